"""Reconcile a project's theme settings with a newer theme schema.

A theme's ``settings`` object is a tree: named groups nest arbitrarily and
end in arrays of setting definitions (``{"id": ..., "value": ..., "default":
...}``). The merge keeps the *new* tree's structure, carries the user's
``value`` forward for every id that survives, starts new settings at their
shipped default, and drops ids the theme author removed.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from widgetizer.errors import ErrorCode, ThemeValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SettingDefinition:
    """One setting inside a group array. ``fields`` holds every key but ``id``."""

    id: str
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def has_value(self) -> bool:
        return "value" in self.fields

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id}
        data.update(copy.deepcopy(self.fields))
        return data


@dataclass(frozen=True, slots=True)
class SettingsLeaf:
    definitions: tuple[SettingDefinition, ...]

    def by_id(self) -> dict[str, SettingDefinition]:
        return {definition.id: definition for definition in self.definitions}


@dataclass(frozen=True, slots=True)
class SettingsGroup:
    children: dict[str, "SettingsNode"]


@dataclass(frozen=True, slots=True)
class SettingsValue:
    """A scalar (or non-definition) entry living directly inside a group."""

    value: Any


SettingsNode = Union[SettingsGroup, SettingsLeaf, SettingsValue]


def parse_settings(data: Any, path: str = "settings") -> SettingsNode:
    """Build a typed settings tree, rejecting malformed definition arrays."""
    if isinstance(data, Mapping):
        return SettingsGroup(
            children={
                str(key): parse_settings(value, f"{path}.{key}")
                for key, value in data.items()
            }
        )
    if isinstance(data, list):
        definitions: list[SettingDefinition] = []
        for index, item in enumerate(data):
            if not isinstance(item, Mapping):
                raise ThemeValidationError(
                    ErrorCode.THEME_SETTINGS_INVALID,
                    message=f"{path}[{index}] must be an object, got {type(item).__name__}",
                )
            setting_id = item.get("id")
            if not isinstance(setting_id, str) or not setting_id:
                raise ThemeValidationError(
                    ErrorCode.THEME_SETTINGS_INVALID,
                    message=f"{path}[{index}] is missing a string 'id'",
                )
            definitions.append(
                SettingDefinition(
                    id=setting_id,
                    fields={key: copy.deepcopy(value) for key, value in item.items() if key != "id"},
                )
            )
        return SettingsLeaf(definitions=tuple(definitions))
    return SettingsValue(value=copy.deepcopy(data))


def settings_to_json(node: SettingsNode) -> Any:
    if isinstance(node, SettingsGroup):
        return {key: settings_to_json(child) for key, child in node.children.items()}
    if isinstance(node, SettingsLeaf):
        return [definition.to_json() for definition in node.definitions]
    return copy.deepcopy(node.value)


def merge_nodes(old: SettingsNode | None, new: SettingsNode, path: str = "settings") -> SettingsNode:
    """Merge *old* user settings into the *new* schema node."""
    if old is None:
        return _with_defaults(new)

    if isinstance(new, SettingsLeaf):
        if not isinstance(old, SettingsLeaf):
            logger.warning("settings shape changed at %s; using theme defaults", path)
            return _with_defaults(new)
        return _merge_leaf(old, new)

    if isinstance(new, SettingsGroup):
        if not isinstance(old, SettingsGroup):
            logger.warning("settings shape changed at %s; using theme defaults", path)
            return _with_defaults(new)
        return SettingsGroup(
            children={
                key: merge_nodes(old.children.get(key), child, f"{path}.{key}")
                for key, child in new.children.items()
            }
        )

    if isinstance(old, SettingsValue):
        return SettingsValue(value=copy.deepcopy(old.value))
    logger.warning("settings shape changed at %s; using theme value", path)
    return new


def _merge_leaf(old: SettingsLeaf, new: SettingsLeaf) -> SettingsLeaf:
    old_by_id = old.by_id()
    merged: list[SettingDefinition] = []
    for definition in new.definitions:
        previous = old_by_id.get(definition.id)
        if previous is None or not previous.has_value:
            merged.append(_definition_with_default(definition))
            continue
        fields = copy.deepcopy(definition.fields)
        fields["value"] = copy.deepcopy(previous.fields["value"])
        merged.append(SettingDefinition(id=definition.id, fields=fields))
    return SettingsLeaf(definitions=tuple(merged))


def _definition_with_default(definition: SettingDefinition) -> SettingDefinition:
    fields = copy.deepcopy(definition.fields)
    if "value" not in fields and "default" in fields:
        fields["value"] = copy.deepcopy(fields["default"])
    return SettingDefinition(id=definition.id, fields=fields)


def _with_defaults(node: SettingsNode) -> SettingsNode:
    if isinstance(node, SettingsLeaf):
        return SettingsLeaf(
            definitions=tuple(_definition_with_default(d) for d in node.definitions)
        )
    if isinstance(node, SettingsGroup):
        return SettingsGroup(
            children={key: _with_defaults(child) for key, child in node.children.items()}
        )
    return node


def merge_theme_settings(old_theme: Mapping[str, Any], new_theme: Mapping[str, Any]) -> dict[str, Any]:
    """Return a new theme.json document: *new_theme* with the user's values carried over.

    Neither argument is modified. The result's ``version`` always comes from
    *new_theme*.
    """
    merged = copy.deepcopy(dict(new_theme))
    new_settings = new_theme.get("settings")
    if new_settings is not None:
        new_node = parse_settings(new_settings)
        old_settings = old_theme.get("settings")
        old_node = parse_settings(old_settings) if old_settings is not None else None
        merged["settings"] = settings_to_json(merge_nodes(old_node, new_node))
    if "version" in new_theme:
        merged["version"] = new_theme["version"]
    return merged
