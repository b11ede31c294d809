"""Centralized constants for the KamJai engine.

All magic numbers and tuning defaults live here so every layer
imports from a single source of truth.
"""

# ---------- Normalization ----------
# Ordered most specific first; the first trailing match is stripped.
THAI_POLITE_PARTICLES = ("นะครับ", "นะคะ", "ครับ", "ค่ะ", "คะ", "นะ")
ROMAN_POLITE_PARTICLES = ("na khrap", "na kha", "khrap", "kha", "na")

# ---------- Intent Matching ----------
MATCH_CONFIDENCE_THRESHOLD = 0.65
MAX_EDIT_DISTANCE = 2
INTENT_PREFIX = "INTENT"

# ---------- Definition Builder ----------
MIN_PROMPTS = 4
MAX_PROMPTS = 10
BASE_PROMPTS = 5
MIN_MISTAKES = 2
BASE_MISTAKES = 4
MIN_DURATION_SECONDS = 30
MAX_DURATION_SECONDS = 90
BASE_DURATION_SECONDS = 45
SPEED_FACTOR_STEP = 0.03
DEFAULT_VOCAB_LIMIT = 12

# ---------- Session Engine ----------
DEFAULT_TICK_INTERVAL_MS = 250

# ---------- Levels / Progression ----------
MAX_LEVEL = 30
LEVEL_COMPLETION_TOKENS = 25
UNLOCK_ALL_MIN_TOKENS = 3000
SCORE_PER_CORRECT = 100

# ---------- Spaced Repetition ----------
MIN_BOX = 1
MAX_BOX = 5
BOX_INTERVAL_DAYS = (1, 3, 7, 14, 30)
HARD_INTERVAL_SCALE = 0.5
EASY_INTERVAL_SCALE = 1.5
HARD_DEMOTION_STREAK = 2
PROBLEM_WORD_THRESHOLD = 3
LEECH_STREAK = 2

# ---------- Review Queue ----------
DEFAULT_REVIEW_QUEUE_LIMIT = 20
DEFAULT_REVIEW_SESSION_SIZE = 8
DEFAULT_DAILY_REVIEW_TARGET = 8
DEFAULT_STREAK_WINDOW_DAYS = 7

# ---------- Speech ----------
DEFAULT_SPEECH_LOCALE = "th-TH"
SPEECH_REQUEST_TIMEOUT = 10.0
