# /*
# Copyright 2026 The Runtime Copilot Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""In-place YAML field assignment by yq-style path (``.a.b[0].c``)."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any

import yaml

from copilot_e2e import logger
from copilot_e2e.errors import ExternalToolError

_TOKEN = re.compile(r"\.([A-Za-z_][\w-]*)|\[(\d+)\]")


def parse_path(path: str) -> list[str | int]:
    """Split a path such as ``.charts[0].versions[0]`` into keys and indices.

    Raises:
        ValueError: If the path is empty or malformed.
    """
    keys: list[str | int] = []
    pos = 0
    while pos < len(path):
        match = _TOKEN.match(path, pos)
        if match is None:
            raise ValueError(f"Invalid field path '{path}' at offset {pos}")
        name, index = match.groups()
        keys.append(name if name is not None else int(index))
        pos = match.end()
    if not keys or not isinstance(keys[0], str):
        raise ValueError(f"Field path must start with a key: '{path}'")
    return keys


def _container_for(next_key: str | int) -> Any:
    return [] if isinstance(next_key, int) else {}


def assign(document: Any, path: str, value: Any) -> Any:
    """Assign *value* at *path* inside *document*, creating missing parents.

    Returns:
        The (possibly newly created) root document.
    """
    keys = parse_path(path)
    root = document if document is not None else {}
    node = root
    for key, next_key in zip(keys, [*keys[1:], None]):
        last = next_key is None
        if isinstance(key, int):
            if not isinstance(node, list):
                raise ValueError(f"Cannot index non-list with [{key}] in '{path}'")
            while len(node) <= key:
                node.append(None)
            if last:
                node[key] = value
            elif not isinstance(node[key], (dict, list)):
                node[key] = _container_for(next_key)
            if not last:
                node = node[key]
        else:
            if not isinstance(node, dict):
                raise ValueError(f"Cannot look up '{key}' in non-mapping in '{path}'")
            if last:
                node[key] = value
            else:
                if not isinstance(node.get(key), (dict, list)):
                    node[key] = _container_for(next_key)
                node = node[key]
    return root


def set_field(document_path: Path, path: str, value: Any) -> None:
    """Set one field of a YAML document on disk, rewriting it in place.

    Args:
        document_path: YAML file to edit.
        path: yq-style field path (e.g. ``.source.repo.url``).
        value: New value for the field.
    """
    set_fields(document_path, {path: value})


def set_fields(document_path: Path, values: dict[str, Any]) -> None:
    """Set several fields of a YAML document on disk in one rewrite.

    Args:
        document_path: YAML file to edit.
        values: Mapping of yq-style field path to new value.

    Raises:
        ExternalToolError: If the document is missing, unparsable, or does
            not have the shape a path expects.
    """
    try:
        with open(document_path) as f:
            document = yaml.safe_load(f)
        for path, value in values.items():
            document = assign(document, path, value)
            logger.info("%s: %s updated", document_path.name, path)
        with open(document_path, "w") as f:
            yaml.safe_dump(document, f, default_flow_style=False, sort_keys=False)
    except (OSError, yaml.YAMLError, ValueError) as e:
        raise ExternalToolError(["yq", "-i", ", ".join(values), str(document_path)], None, stderr=str(e)) from e
