"""Slack ingress and egress: webhook handling, Web API calls, and message building.

The webhook router lives in ``voice_converter.slack.router`` and is imported
by the app directly, keeping this package importable from the pipeline.
"""

from voice_converter.slack.client import SlackClient
from voice_converter.slack.files import is_audio_file

__all__ = [
    "SlackClient",
    "is_audio_file",
]
