"""
Client library for cloud text to speech and speech to text services.

Each service client builds typed REST requests over ``httpx``; the speech to
text client adds helpers that poll server-side jobs (corpus analysis,
custom model training) until they finish, and a websocket recognize stream.
"""
from .config import (
    Authenticator,
    BasicAuthenticator,
    BearerTokenAuthenticator,
    NoAuthAuthenticator,
    ServiceConfig,
)
from .errors import (
    DomainFailureError,
    ErrorCode,
    MissingParameterError,
    NoResourceError,
    PollError,
    PollTimeoutError,
    SpeechServiceError,
    TrainingFailedError,
    UnexpectedStatusError,
)
from .polling import Classification, Poller, PollPolicy, await_completion, wait_for_completion
from .recognize_stream import RecognizeStream, RecognizeStreamError, format_chunk, split_json_fragments
from .service import BaseService, DetailedResponse, Request
from .speech_to_text import SpeechToTextV1, classify_corpora, classify_training
from .text_to_speech import TextToSpeechV1
from .version import __version__

__all__ = [
    "Authenticator",
    "BaseService",
    "BasicAuthenticator",
    "BearerTokenAuthenticator",
    "Classification",
    "DetailedResponse",
    "DomainFailureError",
    "ErrorCode",
    "MissingParameterError",
    "NoAuthAuthenticator",
    "NoResourceError",
    "PollError",
    "PollPolicy",
    "PollTimeoutError",
    "Poller",
    "RecognizeStream",
    "RecognizeStreamError",
    "Request",
    "ServiceConfig",
    "SpeechServiceError",
    "SpeechToTextV1",
    "TextToSpeechV1",
    "TrainingFailedError",
    "UnexpectedStatusError",
    "__version__",
    "await_completion",
    "classify_corpora",
    "classify_training",
    "format_chunk",
    "split_json_fragments",
    "wait_for_completion",
]
