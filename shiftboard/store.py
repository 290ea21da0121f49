# shiftboard/store.py
from __future__ import annotations
import json, os, pathlib
from typing import Any, Dict, List, Optional

from .config import Config
from .logging_utils import warn
from .rotation import RotationState

DATA_DIR = pathlib.Path(Config().data_dir)
ROTATION_STATE_PATH = pathlib.Path(Config().rotation_state_path)

ACTIVE_IDS_FILE = "samples_active_ids_v1.json"
AVAILABILITY_FILE = "samples_availability_v1.json"
EXTRA_ID_FILE = "samples_extra_id_v1.json"


def load_json(path: pathlib.Path, default):
    path = pathlib.Path(path)
    if not path.exists():
        return default
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError):
        return default


def save_json(path: pathlib.Path, obj) -> None:
    # temp file + replace so a crash never leaves half a file behind
    path = pathlib.Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(obj, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


class JsonStateStore:
    """Rotation state in a small JSON file (the dashboard's local-storage slot)."""
    def __init__(self, path: pathlib.Path = ROTATION_STATE_PATH):
        self.path = pathlib.Path(path)

    @classmethod
    def from_config(cls, cfg: Config) -> "JsonStateStore":
        return cls(pathlib.Path(cfg.rotation_state_path))

    def load(self) -> RotationState:
        return RotationState.from_dict(load_json(self.path, None))

    def save(self, state: RotationState) -> bool:
        try:
            save_json(self.path, state.to_dict())
            return True
        except (OSError, TypeError, ValueError) as e:
            warn(f"could not write {self.path}: {e}")
            return False


class MemoryStateStore:
    def __init__(self, state: Optional[RotationState] = None):
        self.state = state.copy() if state else RotationState()
        self.saves = 0

    def load(self) -> RotationState:
        return self.state.copy()

    def save(self, state: RotationState) -> bool:
        self.state = state.copy()
        self.saves += 1
        return True


_default: Optional[JsonStateStore] = None


def default_rotation_store() -> JsonStateStore:
    global _default
    if _default is None:
        _default = JsonStateStore.from_config(Config.from_env())
    return _default


class LocalSelections:
    """
    Local fallback copy of the sampling selections, restored before the
    backend answers: active ids, availability map, highlighted extra.
    """
    def __init__(self, root: pathlib.Path = DATA_DIR):
        self.root = pathlib.Path(root)

    @classmethod
    def from_config(cls, cfg: Config) -> "LocalSelections":
        return cls(pathlib.Path(cfg.data_dir))

    def _save(self, name: str, obj: Any) -> bool:
        try:
            save_json(self.root / name, obj)
            return True
        except (OSError, TypeError, ValueError) as e:
            warn(f"could not write {self.root / name}: {e}")
            return False

    def load_active_ids(self) -> List[str]:
        ids = load_json(self.root / ACTIVE_IDS_FILE, [])
        return [str(i) for i in ids] if isinstance(ids, list) else []

    def save_active_ids(self, ids: List[str]) -> bool:
        return self._save(ACTIVE_IDS_FILE, list(ids))

    def load_availability(self) -> Dict[str, bool]:
        m = load_json(self.root / AVAILABILITY_FILE, {})
        if not isinstance(m, dict):
            return {}
        return {str(k): bool(v) for k, v in m.items()}

    def save_availability(self, availability: Dict[str, bool]) -> bool:
        return self._save(AVAILABILITY_FILE, dict(availability))

    def load_extra_id(self) -> Optional[str]:
        v = load_json(self.root / EXTRA_ID_FILE, None)
        return v if isinstance(v, str) and v else None

    def save_extra_id(self, extra_id: Optional[str]) -> bool:
        path = self.root / EXTRA_ID_FILE
        if extra_id:
            return self._save(EXTRA_ID_FILE, extra_id)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            warn(f"could not remove {path}: {e}")
            return False
        return True
