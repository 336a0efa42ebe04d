"""
tgProject resolution.

Sources are tried in order and the first hit wins:

1. path mappings      - the file path contains an enabled mapping's pattern
2. frontmatter key    - metadata_config.metadata_key holds a string
3. project config     - the config data's "project" holds a string
"""

from typing import Any, Mapping, Optional

from mdtasks.config import ProjectConfig
from mdtasks.models.task import TgProject


def determine_tg_project(
    file_path: str,
    project_config: Optional[ProjectConfig],
    file_metadata: Optional[Mapping[str, Any]] = None,
    project_config_data: Optional[Mapping[str, Any]] = None,
) -> Optional[TgProject]:
    """Resolve the project for a file, or None when enhanced projects are off or nothing matches."""
    if project_config is None or not project_config.enable_enhanced_project:
        return None

    for mapping in project_config.path_mappings:
        if mapping.enabled and mapping.path_pattern and mapping.path_pattern in file_path:
            return TgProject(type="path", name=mapping.project_name, source=mapping.path_pattern)

    metadata_config = project_config.metadata_config
    if metadata_config.enabled and file_metadata:
        key = metadata_config.metadata_key or "project"
        value = file_metadata.get(key)
        if isinstance(value, str) and value:
            return TgProject(type="metadata", name=value, source=key)

    config_file = project_config.config_file
    if config_file.enabled and project_config_data:
        value = project_config_data.get("project")
        if isinstance(value, str) and value:
            return TgProject(type="config", name=value, source=config_file.file_name)

    return None
