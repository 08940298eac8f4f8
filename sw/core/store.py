"""Persistence for the stopwatch: a tiny string key-value store plus the record stored in it.

The store is only a recovery aid. Every failure is logged and then treated as
"nothing saved", never raised to the caller.
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from sw.common.logger import log

START_KEY = "startTime"
ELAPSED_KEY = "elapsedTime"
RUNNING_KEY = "isRunning"


#region === Stores ===

# Interface every store implements. Values are always strings, absent keys come back as None.
class KeyValueStore:

    def get(self, key) -> str | None:
        raise NotImplementedError

    def set(self, key, value: str) -> bool:
        raise NotImplementedError

    def remove(self, key) -> bool:
        raise NotImplementedError


# Plain dict-backed store. Nothing survives the process.
class MemoryStore(KeyValueStore):

    def __init__(self, initial=None):
        self.data = dict(initial or {})

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = str(value)
        return True

    def remove(self, key):
        self.data.pop(key, None)
        return True


# Store that keeps all keys as one flat JSON object in a single file. Writes go through a temp file and
# os.replace, so a crash mid-write leaves the previous file intact.
class JsonFileStore(KeyValueStore):

    def __init__(self, path):
        self.path = Path(path)

    def _read(self):
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            log.warning(f"Could not read timer store at '{self.path}', treating it as empty.",exc_info=True)
            return {}
        if not isinstance(data, dict):
            log.warning(f"Timer store at '{self.path}' is not a JSON object, treating it as empty.")
            return {}
        return data

    def _write(self, data):
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
            return True
        except OSError:
            log.warning(f"Failed to write timer store at '{self.path}'.",exc_info=True)
            return False

    def get(self, key):
        value = self._read().get(key)
        if value is None:
            return None
        return str(value)

    def set(self, key, value):
        data = self._read()
        data[key] = str(value)
        return self._write(data)

    def remove(self, key):
        data = self._read()
        if key not in data:
            return True
        del data[key]
        return self._write(data)

#endregion === Stores ===

#region === Persisted record ===

@dataclass(frozen=True)
class PersistedRecord:
    """The durable projection of a timer: one optional field per store key."""
    start_ms: int | None = None
    elapsed_ms: int | None = None
    is_running: bool | None = None


def _parse_ms(key, raw):
    if raw is None:
        return None
    # Plain ASCII digits only. int() on its own would also take "+5", " 7 " or "1_000".
    if not isinstance(raw, str) or not (raw.isascii() and raw.isdigit()):
        log.warning(f"Ignoring malformed stored value for '{key}': {raw!r}")
        return None
    return int(raw)

def _parse_bool(key, raw):
    if raw is None:
        return None
    if raw == "true":
        return True
    if raw == "false":
        return False
    log.warning(f"Ignoring malformed stored value for '{key}': {raw!r}")
    return None


# Reads all three keys. A store that blows up reads the same as an empty one.
def load_record(store):
    values = {}
    for key in (START_KEY, ELAPSED_KEY, RUNNING_KEY):
        try:
            values[key] = store.get(key)
        except Exception:
            log.warning(f"Store read for '{key}' failed, treating it as absent.",exc_info=True)
            values[key] = None
    return PersistedRecord(
        start_ms=_parse_ms(START_KEY, values[START_KEY]),
        elapsed_ms=_parse_ms(ELAPSED_KEY, values[ELAPSED_KEY]),
        is_running=_parse_bool(RUNNING_KEY, values[RUNNING_KEY]),
    )


def _put(store, key, value):
    try:
        if value is None:
            ok = store.remove(key)
        else:
            ok = store.set(key, value)
    except Exception:
        log.warning(f"Store write for '{key}' failed.",exc_info=True)
        return False
    return ok is not False


# Writes the record to the store, removing keys whose field is None. When `previous` is given, only keys that
# differ from it are touched. Returns the keys whose write failed, empty when everything landed.
#
# Key order matters since there's no transaction: isRunning is written last when turning on and first when
# turning off, so a crash halfway can lose the latest running stretch but never count it twice.
def save_record(store, record, previous=None):
    fields = {
        START_KEY: None if record.start_ms is None else str(record.start_ms),
        ELAPSED_KEY: None if record.elapsed_ms is None else str(record.elapsed_ms),
        RUNNING_KEY: None if record.is_running is None else ("true" if record.is_running else "false"),
    }
    if record.is_running:
        order = (START_KEY, ELAPSED_KEY, RUNNING_KEY)
    else:
        order = (RUNNING_KEY, ELAPSED_KEY, START_KEY)

    before = None
    if previous is not None:
        before = {
            START_KEY: previous.start_ms,
            ELAPSED_KEY: previous.elapsed_ms,
            RUNNING_KEY: previous.is_running,
        }
    after = {
        START_KEY: record.start_ms,
        ELAPSED_KEY: record.elapsed_ms,
        RUNNING_KEY: record.is_running,
    }

    failed = []
    for key in order:
        if before is not None and before[key] == after[key]:
            continue
        if not _put(store, key, fields[key]):
            failed.append(key)
    return failed


def clear_record(store):
    return save_record(store, PersistedRecord())

#endregion === Persisted record ===
