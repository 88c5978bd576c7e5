"""Voice session pipeline package.

Modules are organised by the order in which an ``audioStream`` event runs:

1. `transcription` – ffmpeg conversion, silence gate, recognizer call.
2. `routing` – keyword handlers or the generative fallback.
3. `synthesis` – Polly audio staged as a per-request artifact.
4. `orchestrator` – admission, error mapping and event emission.

`greeting` builds the text for ``requestGreeting`` events and `types` holds
the shared containers and collaborator contracts.
"""

from .greeting import build_greeting, part_of_day_phrase
from .orchestrator import EventSink, VoiceOrchestrator
from .routing import GENERATIVE_HANDLER, KeywordRoute, TranscriptRouter
from .synthesis import ResponseSynthesizer
from .transcription import TranscriptionStage
from .types import (
    AudioJob,
    Recognizer,
    ResponseArtifact,
    RoutedResponse,
    SpeechSynthesizer,
    SystemStats,
    TextGenerator,
    TranscriptResult,
)

__all__ = [
    "AudioJob",
    "EventSink",
    "GENERATIVE_HANDLER",
    "KeywordRoute",
    "Recognizer",
    "ResponseArtifact",
    "ResponseSynthesizer",
    "RoutedResponse",
    "SpeechSynthesizer",
    "SystemStats",
    "TextGenerator",
    "TranscriptResult",
    "TranscriptRouter",
    "TranscriptionStage",
    "VoiceOrchestrator",
    "build_greeting",
    "part_of_day_phrase",
]
