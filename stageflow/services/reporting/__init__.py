"""JUnit test result publishing."""

from .service import JUnitPublisher, PublishOutput

__all__ = ["JUnitPublisher", "PublishOutput"]
