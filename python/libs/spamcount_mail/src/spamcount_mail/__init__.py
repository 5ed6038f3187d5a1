"""Gmail spam counting: paginated fetch-and-aggregate pipeline."""

from spamcount_mail.aggregator import DailyCountAggregator, to_local_date
from spamcount_mail.connectors import GmailConnector, MessageDetail, MessagePage, MessageRef
from spamcount_mail.credentials import OAuthCredentialProvider
from spamcount_mail.errors import (
    AuthError,
    DateParseError,
    NoMatchesError,
    OperationTimeoutError,
    RemoteError,
    SpamCountError,
)
from spamcount_mail.pipeline import SpamCountPipeline, compute_cutoff
from spamcount_mail.report import build_report
from spamcount_mail.result_queue import ResultQueue
from spamcount_mail.retry import ExponentialBackoff, RetryingCaller

__all__ = [
    "GmailConnector",
    "MessageDetail",
    "MessagePage",
    "MessageRef",
    "OAuthCredentialProvider",
    "SpamCountPipeline",
    "compute_cutoff",
    "DailyCountAggregator",
    "to_local_date",
    "build_report",
    "ResultQueue",
    "ExponentialBackoff",
    "RetryingCaller",
    "SpamCountError",
    "AuthError",
    "RemoteError",
    "OperationTimeoutError",
    "NoMatchesError",
    "DateParseError",
]
