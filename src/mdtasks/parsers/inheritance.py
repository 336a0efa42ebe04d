"""
File-level metadata inheritance.

A task may pick up fields from its document's frontmatter and from a
project-config mapping. Precedence is first-writer-wins:

    task metadata  >  frontmatter  >  project config

Fields describing the task's own structure (id, status, position, links...)
are never inherited.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from mdtasks.config import TaskParserConfig
from mdtasks.utils.formatting import normalize_priority_value, normalize_tag

log = logging.getLogger(__name__)

NON_INHERITABLE_FIELDS = frozenset(
    {
        "id",
        "content",
        "status",
        "rawStatus",
        "completed",
        "line",
        "lineNumber",
        "originalMarkdown",
        "filePath",
        "heading",
        "headingLevel",
        "parent",
        "parentId",
        "children",
        "childrenIds",
        "indentLevel",
        "actualIndent",
        "listMarker",
        "tgProject",
        "comment",
        "metadata",
    }
)

SpecialTagResolver = Callable[[str], Optional[Tuple[str, str]]]


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _can_take(metadata: Mapping[str, Any], key: str) -> bool:
    return key not in NON_INHERITABLE_FIELDS and _is_blank(metadata.get(key))


def _inherited_value(key: str, value: Any) -> Any:
    return normalize_priority_value(value) if key == "priority" else value


def tags_for_metadata(tags: Iterable[str], resolver: SpecialTagResolver) -> Dict[str, str]:
    """Collect the metadata fields encoded by special-prefix tags such as ``project/x``."""
    fields: Dict[str, str] = {}
    for tag in tags:
        special = resolver(str(tag))
        if special:
            fields[special[0]] = special[1]
    return fields


def inherit_file_metadata(
    task_metadata: Mapping[str, Any],
    config: TaskParserConfig,
    file_metadata: Optional[Mapping[str, Any]] = None,
    project_config_data: Optional[Mapping[str, Any]] = None,
    is_subtask: bool = False,
    special_tag_resolver: Optional[SpecialTagResolver] = None,
) -> Dict[str, Any]:
    """
    Return task_metadata extended with inherited fields.

    The task's own priority is always normalised to a numeric string when it
    can be. Inheritance itself only happens when file_metadata_inheritance is
    enabled, frontmatter inheritance is on and, for subtasks, subtask
    inheritance is on.

    A frontmatter ``tags`` list is returned normalised under "tags"; the
    caller merges it after the task's own tags.
    """
    inherited: Dict[str, Any] = dict(task_metadata)
    if "priority" in inherited and inherited["priority"] is not None:
        inherited["priority"] = normalize_priority_value(inherited["priority"])

    settings = config.file_metadata_inheritance
    if settings is None or not settings.enabled or not settings.inherit_from_frontmatter:
        return inherited
    if is_subtask and not settings.inherit_from_frontmatter_for_subtasks:
        return inherited

    if file_metadata is not None and not isinstance(file_metadata, Mapping):
        log.warning("Ignoring frontmatter of type %s", type(file_metadata).__name__)
        file_metadata = None

    if file_metadata:
        _apply_project_key(inherited, config, file_metadata)

        for key, value in file_metadata.items():
            if key == "tags" and isinstance(value, list):
                if special_tag_resolver is not None:
                    for tag_key, tag_value in tags_for_metadata(value, special_tag_resolver).items():
                        if _can_take(inherited, tag_key):
                            inherited[tag_key] = _inherited_value(tag_key, tag_value)
                if _can_take(inherited, "tags"):
                    inherited["tags"] = [normalize_tag(str(t)) for t in value if str(t).strip()]
            elif _can_take(inherited, key) and value is not None:
                inherited[key] = _inherited_value(key, value)

    if project_config_data:
        for key, value in project_config_data.items():
            if file_metadata and key in file_metadata:
                continue
            if _can_take(inherited, key) and value is not None:
                inherited[key] = _inherited_value(key, value)

    return inherited


def _apply_project_key(
    inherited: Dict[str, Any], config: TaskParserConfig, file_metadata: Mapping[str, Any]
) -> None:
    """
    Copy the configured frontmatter project key into ``project``.

    Skipped when enhanced project detection reads that key itself (it then
    becomes tgProject instead).
    """
    project_config = config.project_config
    if project_config is None:
        return
    if project_config.enable_enhanced_project and project_config.metadata_config.enabled:
        return

    key = project_config.metadata_config.metadata_key
    value = file_metadata.get(key) if key else None
    if value is None or str(value).strip() == "":
        return
    if _is_blank(inherited.get("project")):
        inherited["project"] = str(value).strip()


def inherited_tags(metadata: Mapping[str, Any]) -> List[str]:
    """Read the "tags" entry left by inherit_file_metadata, whatever its shape."""
    value = metadata.get("tags")
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        return [str(t) for t in value]
    return [str(value)]
