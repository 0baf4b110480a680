from .interval import Scheduler, SchedulerState

__all__ = ["Scheduler", "SchedulerState"]
