# Application SRS Package
from .scheduler import clamp_box, interval_days, new_progress_record, next_box, update_progress

__all__ = ["clamp_box", "interval_days", "new_progress_record", "next_box", "update_progress"]
