from .scheduler_ctrl import SchedulerControl

scheduler_ctrl = SchedulerControl()
