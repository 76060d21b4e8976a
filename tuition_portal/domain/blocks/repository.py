"""Block repository - block-link run bookkeeping"""

from typing import Optional

from sqlalchemy.orm import Session

from ...enums import BlockLinkRunStatus
from ...models import BlockLinkRun


class BlockLinkRunRepository:
    """Each status change is committed so a failed later step leaves an accurate record"""

    @staticmethod
    def create_run(db: Session, **run_data) -> BlockLinkRun:
        run = BlockLinkRun(status=BlockLinkRunStatus.STARTED.value, **run_data)
        db.add(run)
        db.commit()
        db.refresh(run)
        return run

    @staticmethod
    def set_status(db: Session, run: BlockLinkRun, status: BlockLinkRunStatus, **fields) -> BlockLinkRun:
        run.status = status.value
        for key, value in fields.items():
            setattr(run, key, value)
        db.commit()
        db.refresh(run)
        return run

    @staticmethod
    def get_runs(db: Session, slot_id: Optional[str] = None, limit: int = 50) -> list[BlockLinkRun]:
        query = db.query(BlockLinkRun)
        if slot_id:
            query = query.filter(BlockLinkRun.slot_id == slot_id)
        return query.order_by(BlockLinkRun.created_at.desc()).limit(limit).all()

    @staticmethod
    def get_run(db: Session, run_id: str) -> Optional[BlockLinkRun]:
        return db.query(BlockLinkRun).filter(BlockLinkRun.id == run_id).first()
