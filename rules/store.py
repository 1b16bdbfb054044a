"""
Action Store - The three rule layers and the dynamic actions file
=================================================================

Actions are evaluated in the fixed layer order static, builtin, dynamic:

- static:  built from the settings file (and its includes), replaced
           wholesale on reload
- builtin: administrative commands, set once at startup
- dynamic: added and deleted at runtime, saved to a YAML file after
           every change
"""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence, Set, Tuple

import yaml

from core.exceptions import (
    DefinitionError,
    DuplicateTriggerError,
    NotFoundError,
    PersistError,
)
from core.logging import get_logger
from .actions import Action, Reaction, ReactionKind, Trigger

logger = get_logger("rules.store")

PAGE_SIZE = 10
ACTION_FILE_KEYS = {"include", "on_message"}


def read_action_file(path: Path) -> Dict[str, Any]:
    """
    Read a YAML action file.

    Raises:
        DefinitionError: If the file cannot be read or parsed
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise DefinitionError(f"Failed to parse action file: {e}", details={"path": str(path)})
    except OSError as e:
        raise DefinitionError(f"Failed to read action file: {e}", details={"path": str(path)})
    return data or {}


def parse_action_file(
    data: Any,
    base_dir: Path,
    source: str = "settings",
    _seen: Optional[Set[Path]] = None
) -> List[Action]:
    """
    Parse `on_message` definitions followed by all included files.

    Included paths are relative to the including file. They are loaded
    after the declarations of the including file, depth first.

    Args:
        data: Mapping with optional `include` and `on_message` lists
        base_dir: Directory that relative includes are resolved against
        source: Name of the file for error messages

    Returns:
        Actions in evaluation order

    Raises:
        DefinitionError: On the first malformed definition
    """
    seen = _seen if _seen is not None else set()

    if not isinstance(data, dict):
        raise DefinitionError("An action file must be a mapping", details={"source": source})
    unknown = sorted(set(data) - ACTION_FILE_KEYS)
    if unknown:
        raise DefinitionError(
            f"Unknown key(s) in action file: {', '.join(map(str, unknown))}",
            details={"source": source}
        )

    definitions = data.get("on_message") or []
    includes = data.get("include") or []
    if not isinstance(definitions, list):
        raise DefinitionError("'on_message' must be a list", details={"source": source})
    if not isinstance(includes, list):
        raise DefinitionError("'include' must be a list", details={"source": source})

    actions = []
    for index, definition in enumerate(definitions):
        try:
            actions.append(Action.from_definition(definition, index))
        except DefinitionError as e:
            e.details.setdefault("source", source)
            raise

    for include in includes:
        path = (base_dir / str(include)).resolve()
        if path in seen:
            raise DefinitionError(f"Include cycle at {path}", details={"source": source})
        seen.add(path)
        included = read_action_file(path)
        actions.extend(parse_action_file(included, path.parent, str(path), seen))
        seen.discard(path)

    return actions


class ActionStore:
    """
    Holds the static, builtin and dynamic layers.

    The store is owned by a single dispatcher; callers serialize access.

    Example:
        store = ActionStore.load(settings.actions, Path("dynamic.yaml"), Path("."))
        store.add("ping", "pong")
        for action in store.actions():
            ...
    """

    def __init__(
        self,
        dynamic_path: Path,
        static: Sequence[Action] = (),
        builtin: Sequence[Action] = (),
        dynamic: Sequence[Action] = ()
    ):
        self.dynamic_path = Path(dynamic_path)
        self._static: List[Action] = list(static)
        self._builtin: List[Action] = list(builtin)
        self._dynamic: List[Action] = list(dynamic)

    @classmethod
    def load(
        cls,
        static_definitions: Dict[str, Any],
        dynamic_path: Path,
        base_dir: Path
    ) -> "ActionStore":
        """
        Build the static layer and read the dynamic file.

        A missing dynamic file gives an empty dynamic layer and is created
        right away.

        Raises:
            DefinitionError: If any static or dynamic definition is invalid,
                or the dynamic file uses include
            PersistError: If the missing dynamic file cannot be created
        """
        static = parse_action_file(static_definitions or {}, base_dir)

        dynamic_path = Path(dynamic_path)
        if dynamic_path.exists():
            data = read_action_file(dynamic_path)
            if isinstance(data, dict) and data.get("include"):
                raise DefinitionError(
                    "The dynamic actions file cannot include other files",
                    details={"source": str(dynamic_path)}
                )
            dynamic = parse_action_file(data, dynamic_path.parent, str(dynamic_path))
            store = cls(dynamic_path, static=static, dynamic=dynamic)
        else:
            dynamic = []
            store = cls(dynamic_path, static=static)
            logger.info(f"Creating empty dynamic actions file {dynamic_path}")
            store.save()

        logger.info(
            "Loaded actions",
            extra={"static": len(static), "dynamic": len(dynamic)}
        )
        return store

    # === Layers ===

    @property
    def static(self) -> Tuple[Action, ...]:
        return tuple(self._static)

    @property
    def builtin(self) -> Tuple[Action, ...]:
        return tuple(self._builtin)

    @property
    def dynamic(self) -> Tuple[Action, ...]:
        return tuple(self._dynamic)

    def set_builtins(self, actions: Sequence[Action]) -> None:
        self._builtin = list(actions)

    def actions(self) -> Iterator[Action]:
        """All actions in evaluation order: static, builtin, dynamic."""
        yield from self._static
        yield from self._builtin
        yield from self._dynamic

    def __len__(self) -> int:
        return len(self._static) + len(self._builtin) + len(self._dynamic)

    # === Dynamic layer ===

    def find_dynamic(self, trigger_text: str) -> Optional[Action]:
        for action in self._dynamic:
            if action.trigger_text == trigger_text:
                return action
        return None

    def add(self, trigger_text: str, reaction_text: str) -> Action:
        """
        Append a `contains` action with a plain response and save.

        Only the dynamic layer is checked for duplicates.

        Raises:
            DuplicateTriggerError: If a dynamic action has this trigger
            DefinitionError: If the trigger is empty
            PersistError: If saving failed; the action is still added
        """
        if self.find_dynamic(trigger_text) is not None:
            raise DuplicateTriggerError(
                f"An action for '{trigger_text}' already exists",
                {"trigger": trigger_text}
            )

        action = Action(
            trigger=Trigger.contains(trigger_text),
            reaction=Reaction(ReactionKind.RESPONSE, reaction_text),
        )
        self._dynamic.append(action)
        logger.info("Added dynamic action", extra={"trigger": trigger_text})
        self.save()
        return action

    def delete(self, trigger_text: str) -> Action:
        """
        Remove the first dynamic action with this trigger and save.

        Raises:
            NotFoundError: If no dynamic action has this trigger
            PersistError: If saving failed; the action is still removed
        """
        for i, action in enumerate(self._dynamic):
            if action.trigger_text == trigger_text:
                del self._dynamic[i]
                logger.info("Deleted dynamic action", extra={"trigger": trigger_text})
                self.save()
                return action

        raise NotFoundError(f"No action found for '{trigger_text}'", {"trigger": trigger_text})

    def page_count(self) -> int:
        return max(1, -(-len(self._dynamic) // PAGE_SIZE))

    def list(self, page: int = 1) -> List[Tuple[str, str]]:
        """
        One page of dynamic actions as (trigger_text, reaction_summary).

        Pages are numbered from 1; pages past the end are empty.
        """
        start = (max(page, 1) - 1) * PAGE_SIZE
        return [
            (action.trigger_text, action.reaction.summary())
            for action in self._dynamic[start:start + PAGE_SIZE]
        ]

    def save(self) -> None:
        """
        Write the dynamic layer to its file.

        The file is replaced atomically so a failed write never leaves a
        truncated file behind.

        Raises:
            PersistError: If the file cannot be written
        """
        data = {"on_message": [action.to_definition() for action in self._dynamic]}
        path = self.dynamic_path

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
                os.replace(tmp_name, path)
            except BaseException:
                os.unlink(tmp_name)
                raise
        except OSError as e:
            logger.error(f"Failed to save dynamic actions: {e}", extra={"path": str(path)})
            raise PersistError(f"Failed to save dynamic actions: {e}", {"path": str(path)})

    # === Static layer ===

    def reload(self, static_definitions: Dict[str, Any], base_dir: Path) -> None:
        """
        Replace the static layer.

        The new layer is built completely before it is swapped in, so a
        DefinitionError leaves the previous layer in place.
        """
        static = parse_action_file(static_definitions or {}, base_dir)
        self._static = static
        logger.info("Reloaded static actions", extra={"static": len(static)})
