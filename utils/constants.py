"""
SCRIPTBOARD 공통 상수 모듈
"""

# ─── Character selection sentinels (legacy single-slot field) ─────
NO_CHARACTER = -1
RANDOM_CHARACTER = -2

# ─── User-facing messages ─────────────────────────────────
MAIN_IMAGE_REQUIRED = "A main image is required to generate a video prompt."
MAPPING_REQUIRED = "The columns were not recognized. A column mapping is required."
NO_CHAT_REPLY = "There is no AI reply to present."
