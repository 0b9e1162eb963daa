"""
AWS boundary modules.

Exports: SQSEventPublisher, EventPublisher
"""

from .sqs_publisher import EventPublisher, SQSEventPublisher

__all__ = ["EventPublisher", "SQSEventPublisher"]
