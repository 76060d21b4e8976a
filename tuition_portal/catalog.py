"""
Tuition package catalog.

Packages are static product definitions; slots, instances and enrollments
reference them by id.
"""

from dataclasses import dataclass, field
from typing import Optional, Union

SINGLE_SUBJECT = "Single Subject"
MULTI_SUBJECT = "Multi Subject"
CUSTOM_PLAN = "Custom Plan"

SUBJECTS = ("GCSE Maths", "GCSE English Language", "GCSE English Literature", "GCSE Science")


@dataclass(frozen=True)
class TuitionPackage:
    id: str
    name: str
    category: str
    price: Union[int, str]  # GBP, or "Variable"
    sessions: Union[int, str]
    description: str
    tier: Optional[str] = None
    subject: Optional[str] = None
    subjects_allowed: Optional[int] = None
    group_size: Optional[str] = None
    features: tuple = field(default_factory=tuple)


def _single(pkg_id, subject, tier, price, group_size, description):
    name = subject if tier == "Standard" else f"{subject} (Enhanced)"
    return TuitionPackage(
        id=pkg_id,
        name=name,
        category=SINGLE_SUBJECT,
        tier=tier,
        subject=subject,
        price=price,
        sessions=4,
        group_size=group_size,
        description=description,
        features=("4 live sessions",),
    )


def _bundle(pkg_id, subjects_allowed, tier, price):
    return TuitionPackage(
        id=pkg_id,
        name=f"{subjects_allowed} Subject Bundle ({tier})",
        category=MULTI_SUBJECT,
        tier=tier,
        subjects_allowed=subjects_allowed,
        price=price,
        sessions=4 * subjects_allowed,
        description=f"Four-week block across {subjects_allowed} subjects, booked together.",
    )


TUITION_PACKAGES: tuple[TuitionPackage, ...] = (
    _single("p-maths-std", "GCSE Maths", "Standard", 120, "10-14 students",
            "Calm, structured GCSE Maths programme focused on method, accuracy and exam confidence."),
    _single("p-eng-lang-std", "GCSE English Language", "Standard", 120, "10-14 students",
            "Structured English Language programme developing clarity and writing control."),
    _single("p-eng-lit-std", "GCSE English Literature", "Standard", 120, "10-14 students",
            "Literature programme simplifying themes, characters and essay structure."),
    _single("p-sci-std", "GCSE Science", "Standard", 120, "10-14 students",
            "Science support through clarity and exam application across Biology, Chemistry, Physics."),
    _single("p-maths-enh", "GCSE Maths", "Enhanced", 144, "5-8 students",
            "Premium small-group Maths support with increased tutor interaction."),
    _single("p-eng-lang-enh", "GCSE English Language", "Enhanced", 144, "5-8 students",
            "Smaller group English Language support with deeper feedback."),
    _single("p-eng-lit-enh", "GCSE English Literature", "Enhanced", 144, "5-8 students",
            "Structured Literature discussion with closer tutor guidance."),
    _single("p-sci-enh", "GCSE Science", "Enhanced", 144, "5-8 students",
            "Small-group Science support with closer exam practice."),
    _bundle("p-ms-2-std", 2, "Standard", 232),
    _bundle("p-ms-2-enh", 2, "Enhanced", 276),
    _bundle("p-ms-3-std", 3, "Standard", 336),
    _bundle("p-ms-3-enh", 3, "Enhanced", 396),
    _bundle("p-ms-4-std", 4, "Standard", 432),
    _bundle("p-ms-4-enh", 4, "Enhanced", 504),
    TuitionPackage(
        id="p-custom-bespoke",
        name="Bespoke Academic Plan",
        category=CUSTOM_PLAN,
        price="Variable",
        sessions="Variable",
        description="A plan built around one student, priced by bespoke offer.",
    ),
)

_BY_ID = {pkg.id: pkg for pkg in TUITION_PACKAGES}


def get_package(package_id: str) -> Optional[TuitionPackage]:
    return _BY_ID.get(package_id)


def package_name(package_id: str) -> str:
    """Display name, falling back to the raw id for unknown packages"""
    pkg = _BY_ID.get(package_id)
    return pkg.name if pkg else package_id


def is_bundle(package_id: str) -> bool:
    pkg = _BY_ID.get(package_id)
    return bool(pkg and pkg.category == MULTI_SUBJECT)
