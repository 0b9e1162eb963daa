"""
Worker entry points.

- bot_reply_handler: SQS-triggered Lambda storing bot replies
- stale_session_sweeper: scheduled sweep of abandoned waiting_for_bot sessions
"""
