# Storage keys ===========================================

STORE_KEY = 'genius_flashcard_store_v2'
LEGACY_SETS_KEY = 'genius_flashcard_sets'
HEARTS_KEY = 'genius_hearts_data'
USER_DATA_KEY = 'genius_user_data_v1'

EXPORT_VERSION = '2.0.0'
USER_DATA_VERSION = 1

# Sessions ===============================================

MAX_SESSIONS = 100

# Hearts =================================================

MAX_HEARTS = 5
HEART_REGEN_MINUTES = 30

# Cards ==================================================

DIFFICULTIES = ('easy', 'medium', 'hard')
SET_SOURCES = ('notes', 'ai', 'import')
BOOKMARK_TYPES = ('category', 'question', 'flashcard_set', 'trivia')
