"""Hard-coded configuration constants not meant to be user-configurable."""

DEFAULT_MAX_STEPS = 10
DEFAULT_SEARCH_RESULT_COUNT = 10
DEFAULT_TITLE_MAX_LENGTH = 100
DEFAULT_CHAT_TITLE = "New Chat"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_DATABASE_PATH = ".deepsearch/deepsearch.sqlite"
DEFAULT_SERPER_BASE_URL = "https://google.serper.dev"
DEFAULT_SEARCH_TIMEOUT = 15.0
# Bounded so a slow client blocks the producer instead of growing memory
DEFAULT_STREAM_QUEUE_SIZE = 64
