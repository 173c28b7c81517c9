"""
Loading controls, findings, topics and summaries from YAML or JSON files.
"""

import json
from pathlib import Path
from typing import Any, List, Union

import yaml

from .models import Control, Finding

PathLike = Union[str, Path]


def load_document(path: PathLike) -> Any:
    """Parse a JSON or YAML document, chosen by file extension."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix.lower() == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def _records(path: PathLike, key: str) -> List[dict]:
    data = load_document(path)
    if isinstance(data, dict):
        data = data.get(key, [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of {key} or a mapping with a '{key}' key")
    return data


def load_controls(path: PathLike) -> List[Control]:
    return [Control.from_dict(item) for item in _records(path, "controls")]


def load_findings(path: PathLike) -> List[Finding]:
    return [Finding.from_dict(item) for item in _records(path, "findings")]


def load_topics(path: PathLike):
    from ..catalog.topic_tagger import ControlTopic
    return [ControlTopic.from_dict(item) for item in _records(path, "topics")]


def write_json(path: PathLike, data: Any) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, default=str)
    return path
