# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Put local values into .env (gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "IW_APP_NAME": "App display name (default: iw).",
    "IW_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Paths
    "IW_DATA_DIR": "Local data directory for logs (default: .local/iw).",
    "IW_VAULT_DIR": "Root folder of the Markdown vault (default: current directory).",
    # Queues
    "IW_QUEUE_FOLDER": "Vault folder holding the queue documents (default: IW-Queues).",
    "IW_QUEUE_FILE": "Default queue document inside that folder (default: IW-Queue.md).",
    "IW_QUEUE_TAGS": "Comma/space separated tags written into new queues (default: iw-queue).",
    # Adding items
    "IW_PRIORITY_MIN": "Lowest default priority for new items, 0-100 (default: 10).",
    "IW_PRIORITY_MAX": "Highest default priority for new items, 0-100 (default: 50).",
    "IW_FIRST_REP_DATE": (
        "First repetition date of new items, any date text /next understands "
        "(default: 1970-01-01, i.e. due right away)."
    ),
    # Auto-add watcher
    "IW_AUTO_ADD_NEW_NOTES": "Add notes created in the vault to the active queue (true/false).",
    "IW_WATCH_INTERVAL_SECONDS": "Polling interval of the watcher (default: 5).",
}
