"""
Adapter Factory
Centralizes the logic for selecting content, progress and speech adapters.
"""

from pathlib import Path

from kamjai.application.config import AppConfig
from kamjai.domain.ports import ProgressStore, SpeechRecognizer, VocabularyRepository
from kamjai.infrastructure.adapters.memory_store import InMemoryProgressStore
from kamjai.infrastructure.adapters.speech_http import HttpSpeechRecognizer
from kamjai.infrastructure.adapters.yaml_store import YamlProgressStore
from kamjai.infrastructure.adapters.yaml_vocab import YamlVocabularyRepository

BUNDLED_CONTENT = Path(__file__).resolve().parent.parent / "data" / "levels.yaml"


def get_vocabulary_repository(config: AppConfig) -> VocabularyRepository:
    """
    Returns a YAML-backed repository; the bundled sample content is used
    when no content_path is configured.
    """
    return YamlVocabularyRepository(config.content_path or BUNDLED_CONTENT)


def get_progress_store(config: AppConfig) -> ProgressStore:
    """
    Returns the file-backed store when progress_path is set, otherwise an
    in-memory store that lives as long as the process.
    """
    if config.progress_path:
        return YamlProgressStore(config.progress_path)
    return InMemoryProgressStore()


def get_speech_recognizer(config: AppConfig) -> SpeechRecognizer:
    return HttpSpeechRecognizer(endpoint=config.speech_endpoint, timeout=config.speech_timeout)
