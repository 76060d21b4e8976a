"""
Scheduling Domain

Weekly slots, their dated instances and the live classroom access window.

- access.py / gate.py: pure evaluation of the join window and join rules
- block_calendar.py: next-occurrence and four-week block dates
- time_utils.py: start time parsing and schedule labels
- clock.py: injectable "now" for routes and tests
- repository.py / service.py / router.py: slot and instance CRUD
"""
