"""Exception types shared across layers."""


class KamjaiError(Exception):
    """Base class for all engine errors."""


class SpeechRecognitionError(KamjaiError):
    """The speech collaborator failed to produce a transcript."""


class ProgressStoreError(KamjaiError):
    """A read or upsert against the progress store failed."""


class ContentError(KamjaiError):
    """Vocabulary or level content could not be parsed."""
