"""Workers: the sequential batch processor and its pause token."""

from captioner.workers.batch import BatchProcessor, PauseToken, RunState

__all__ = ["BatchProcessor", "PauseToken", "RunState"]
