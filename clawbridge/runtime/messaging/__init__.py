"""Messaging pipeline -- commands, directives, replies, and Kakao envelopes."""

from .directives import DirectiveKind, DirectiveResult, extract_directives
from .kakao import CallbackClient, CallbackError, error_response, immediate_response, text_response
from .message_processor import MessageProcessor
from .replies import QuickReply, Reply, ResponseMode, Route

__all__ = [
    "CallbackClient",
    "CallbackError",
    "DirectiveKind",
    "DirectiveResult",
    "MessageProcessor",
    "QuickReply",
    "Reply",
    "ResponseMode",
    "Route",
    "error_response",
    "extract_directives",
    "immediate_response",
    "text_response",
]
