import json
from sw.common.logger import log
from sw.common.setup import PATHS


#region === Helpers and Paths ===

SETTINGS_PATH = PATHS.current / "settings.json"
STORE_PATH = PATHS.current / "timer_store.json"

TICK_STRATEGIES = ("drift_free", "accumulate")

# Default values for every setting. Anything missing or invalid on load gets one of these.
_SETTINGS_DEFAULTS = {
    "tick_interval_ms": 10,
    "tick_strategy": "drift_free",
    "always_on_top": False,
    "confirm_reset": False,
}

# Per-key validators, each returning True if the loaded value can be used as-is.
_SETTINGS_VALIDATORS = {
    "tick_interval_ms": lambda v: isinstance(v, int) and not isinstance(v, bool) and v >= 1,
    "tick_strategy": lambda v: v in TICK_STRATEGIES,
    "always_on_top": lambda v: isinstance(v, bool),
    "confirm_reset": lambda v: isinstance(v, bool),
}

# Helper to return a truly fresh, default settings dict.
def build_default_settings():
    return dict(_SETTINGS_DEFAULTS)

#endregion === Helpers and Paths ===

#region === Saving and Loading Settings ===

# Loads settings from SETTINGS_PATH (creating it on first run), defaulting any keys that are missing or fail
# validation. Unknown keys are dropped.
def load_settings():
    try:
        # First run: write the defaults out so there's a file to edit.
        if not SETTINGS_PATH.exists():
            log.info("No existing settings.json found in `current`, writing and loading default settings.")
            settings = build_default_settings()
            try:
                save_settings(settings)
            except OSError:
                log.warning(f"Could not write default settings to '{SETTINGS_PATH}'.",exc_info=True)
            return settings

        with open(SETTINGS_PATH, "r", encoding="utf-8") as f:
            loaded = json.load(f)
        if not isinstance(loaded, dict):
            log.warning(f"settings.json at '{SETTINGS_PATH}' is not a JSON object, loading default settings.")
            return build_default_settings()

        settings = {}
        defaulted_values = set()
        for key, default in _SETTINGS_DEFAULTS.items():
            if key in loaded and _SETTINGS_VALIDATORS[key](loaded[key]):
                settings[key] = loaded[key]
            else:
                defaulted_values.add(key)
                settings[key] = default

        if defaulted_values:
            log.warning(f"Loaded settings from '{SETTINGS_PATH}', but with missing or invalid values that were defaulted: {', '.join(sorted(defaulted_values))}")
        else:
            log.info(f"Successfully loaded settings from '{SETTINGS_PATH}'.")
        return settings
    # Fall back to fresh settings in case of error, but warn in log
    except (json.JSONDecodeError, OSError, TypeError):
        log.warning("Ran into an error while trying to load settings.json, falling back to default settings.",exc_info=True)
        return build_default_settings()

# Write the given settings to disk under SETTINGS_PATH.
def save_settings(settings):
    SETTINGS_PATH.parent.mkdir(parents=True, exist_ok=True)
    with open(SETTINGS_PATH, "w", encoding="utf-8") as f:
        json.dump(settings, f, indent=2)
    log.info(f"Successfully saved settings to '{SETTINGS_PATH}'")

#endregion === Saving and Loading Settings ===
