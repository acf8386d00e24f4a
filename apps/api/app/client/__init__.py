from app.client.poller import PollerSettings, PollOutcome, QuizClient, StatusPoller
from app.client.session import QuizSession

__all__ = ["PollerSettings", "PollOutcome", "QuizClient", "StatusPoller", "QuizSession"]
