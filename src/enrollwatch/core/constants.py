"""
Application-wide constants.
"""

# Telemetry event types the engine gives special meaning to
PHASE_CHANGED_EVENT = "esp_phase_changed"
APP_INSTALL_STARTED_EVENTS: tuple[str, ...] = ("app_install_started", "app_install_start")
APP_INSTALL_COMPLETION_EVENTS: tuple[str, ...] = ("app_install_completed", "app_install_failed")
ENROLLMENT_COMPLETE_EVENT = "enrollment_complete"
ENROLLMENT_FAILED_EVENT = "enrollment_failed"

TERMINAL_EVENT_TYPES = frozenset({ENROLLMENT_COMPLETE_EVENT, ENROLLMENT_FAILED_EVENT})

# Payload keys used to identify an app across install lifecycle events, in lookup order
APP_KEY_FIELDS: tuple[str, ...] = ("appId", "appName", "name")

DEFAULT_PHASE_FIELD = "espPhase"

# Scores are percentages
MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100
