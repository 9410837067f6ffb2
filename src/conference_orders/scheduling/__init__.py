from .service import CommandSchedulerService
from .worker import CommandSchedulerWorker, CycleReport

__all__ = ["CommandSchedulerService", "CommandSchedulerWorker", "CycleReport"]
