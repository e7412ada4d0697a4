"""Constants for Notion synchronization."""

# Notion rejects more than 100 children per request; pages stay well under that
MAX_BLOCKS = 50

# Notion rich text content limit
MAX_TEXT_LENGTH = 2000

# Minimum pause after every page write (~2.5 requests/second)
REQUEST_INTERVAL_SECONDS = 0.4

# Unmapped games examined per batch by the backfill pass
BACKFILL_LIMIT = 50

DATABASE_TITLE = "Steam Game Library"
STEAM_STORE_URL = "https://store.steampowered.com/app/{app_id}"

PROP_NAME = "Name"
PROP_APP_ID = "App ID"
PROP_PLAYTIME = "Playtime"
PROP_LAST_PLAYED = "Last Played"
PROP_STEAM_LINK = "Steam Link"
PROP_SYNCED_AT = "Synced At"

CALLOUT_EMOJI = "\U0001f3ae"
PROVENANCE_NOTICE = (
    "Synced automatically from your Steam library. "
    "Edits to properties are overwritten on the next sync."
)

# Property schema applied to the collection on provisioning
COLLECTION_PROPERTIES: dict[str, dict] = {
    PROP_NAME: {"title": {}},
    PROP_APP_ID: {"number": {}},
    PROP_PLAYTIME: {"number": {}},
    PROP_LAST_PLAYED: {"date": {}},
    PROP_STEAM_LINK: {"url": {}},
    PROP_SYNCED_AT: {"date": {}},
}
