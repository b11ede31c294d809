# Infrastructure Adapters Package
from .memory_store import InMemoryProgressStore
from .speech_http import HttpSpeechRecognizer
from .yaml_store import YamlProgressStore
from .yaml_vocab import YamlVocabularyRepository

__all__ = [
    "HttpSpeechRecognizer",
    "InMemoryProgressStore",
    "YamlProgressStore",
    "YamlVocabularyRepository",
]
