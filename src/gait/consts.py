from typing import Final

GAIT_FOLDER_NAME: Final = ".gait"
SNAPSHOT_FILE_NAME: Final = "stashedPanelChats.json"
SCHEMA_VERSION: Final = "1.0"

SNAPSHOT_FILE_ENV: Final = "GAIT_SNAPSHOT_FILE"

# Commits whose subject starts with one of these only record a logical deletion.
DELETE_MESSAGE_PREFIX: Final = "Delete message with ID"
DELETE_PANEL_CHAT_PREFIX: Final = "Delete PanelChat with ID"
DELETION_COMMIT_PREFIXES: Final = (DELETE_MESSAGE_PREFIX, DELETE_PANEL_CHAT_PREFIX)

# Below this many distinct added lines, matches are accepted line by line.
LARGE_CHANGE_THRESHOLD: Final = 5
