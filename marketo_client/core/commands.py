"""Static command catalog for the supported Marketo REST endpoints."""

import logging
from types import MappingProxyType
from typing import Mapping

from .models import (
    CommandDefinition,
    ConfigurationError,
    HttpMethod,
    ParamDefinition,
    ParamLocation,
    UnknownCommandError,
)

logger = logging.getLogger(__name__)

PATH = ParamLocation.PATH
QUERY = ParamLocation.QUERY
BODY = ParamLocation.BODY

# Paging parameters shared by the multi-record reads
_PAGING = (
    ParamDefinition("batchSize", QUERY),
    ParamDefinition("nextPageToken", QUERY),
)

_CATALOG = (
    CommandDefinition(
        name="create_or_update_leads",
        method=HttpMethod.POST,
        path="/leads.json",
        params=(
            ParamDefinition("action", BODY),
            ParamDefinition("lookupField", BODY),
            ParamDefinition("input", BODY, required=True),
            ParamDefinition("asyncProcessing", BODY),
            ParamDefinition("partitionName", BODY),
        ),
    ),
    CommandDefinition(
        name="get_lists",
        method=HttpMethod.GET,
        path="/lists.json",
        params=(
            ParamDefinition("id", QUERY),
            ParamDefinition("name", QUERY),
            ParamDefinition("programName", QUERY),
            ParamDefinition("workspaceName", QUERY),
            *_PAGING,
        ),
        repeated_params=("id",),
    ),
    CommandDefinition(
        name="get_list",
        method=HttpMethod.GET,
        path="/lists/{id}.json",
        params=(ParamDefinition("id", PATH, required=True),),
    ),
    CommandDefinition(
        name="get_leads_by_filter_type",
        method=HttpMethod.GET,
        path="/leads.json",
        params=(
            ParamDefinition("filterType", QUERY, required=True),
            ParamDefinition("filterValues", QUERY, required=True),
            ParamDefinition("fields", QUERY),
            *_PAGING,
        ),
    ),
    CommandDefinition(
        name="get_leads_by_list",
        method=HttpMethod.GET,
        path="/list/{listId}/leads.json",
        params=(
            ParamDefinition("listId", PATH, required=True),
            ParamDefinition("fields", QUERY),
            *_PAGING,
        ),
    ),
    CommandDefinition(
        name="get_lead",
        method=HttpMethod.GET,
        path="/lead/{id}.json",
        params=(
            ParamDefinition("id", PATH, required=True),
            ParamDefinition("fields", QUERY),
        ),
    ),
    CommandDefinition(
        name="is_member_of_list",
        method=HttpMethod.GET,
        path="/lists/{listId}/leads/ismember.json",
        params=(
            ParamDefinition("listId", PATH, required=True, echo_to_query=True),
            ParamDefinition("id", QUERY, required=True),
        ),
        repeated_params=("id",),
    ),
    CommandDefinition(
        name="get_campaign",
        method=HttpMethod.GET,
        path="/campaigns/{id}.json",
        params=(ParamDefinition("id", PATH, required=True),),
    ),
    CommandDefinition(
        name="get_campaigns",
        method=HttpMethod.GET,
        path="/campaigns.json",
        params=(
            ParamDefinition("id", QUERY),
            ParamDefinition("name", QUERY),
            ParamDefinition("programName", QUERY),
            ParamDefinition("workspaceName", QUERY),
            *_PAGING,
        ),
        repeated_params=("id",),
    ),
    CommandDefinition(
        name="add_leads_to_list",
        method=HttpMethod.POST,
        path="/lists/{listId}/leads.json",
        params=(
            ParamDefinition("listId", PATH, required=True),
            ParamDefinition("id", QUERY, required=True),
        ),
        repeated_params=("id",),
    ),
    # Marketo removes list members on DELETE; the POST form carries the
    # verb override in the query string.
    CommandDefinition(
        name="remove_leads_from_list",
        method=HttpMethod.POST,
        path="/lists/{listId}/leads.json",
        params=(
            ParamDefinition("listId", PATH, required=True),
            ParamDefinition("id", QUERY, required=True),
        ),
        repeated_params=("id",),
        fixed_query=(("_method", "DELETE"),),
    ),
)


def validate_command(command: CommandDefinition) -> None:
    """
    Check a single catalog entry for internal consistency.

    Args:
        command: The command definition to check

    Raises:
        ConfigurationError: If the entry is inconsistent
    """
    names = [p.name for p in command.params]
    duplicates = {n for n in names if names.count(n) > 1}
    if duplicates:
        raise ConfigurationError(
            f"Command '{command.name}' declares duplicate parameters: "
            f"{', '.join(sorted(duplicates))}"
        )

    placeholders = set(command.path_placeholders)
    path_params = {p.name for p in command.params if p.location == PATH}
    if placeholders != path_params:
        raise ConfigurationError(
            f"Command '{command.name}' path '{command.path}' placeholders "
            f"{sorted(placeholders)} do not match path parameters {sorted(path_params)}"
        )

    for param in command.params:
        if param.echo_to_query and param.location != PATH:
            raise ConfigurationError(
                f"Command '{command.name}' parameter '{param.name}' can only be "
                f"echoed to the query string from the path"
            )

    for name in command.repeated_params:
        param = command.get_param(name)
        if param is None or param.location != QUERY:
            raise ConfigurationError(
                f"Command '{command.name}' repeats '{name}', which is not a "
                f"declared query parameter"
            )

    if command.passthrough_location == PATH:
        raise ConfigurationError(
            f"Command '{command.name}' cannot pass extra parameters into the path"
        )


def validate_catalog(catalog: Mapping[str, CommandDefinition]) -> None:
    """
    Validate every entry of a command catalog.

    Args:
        catalog: Mapping of command name to definition

    Raises:
        ConfigurationError: If any entry is inconsistent or keyed under
            a different name than its own
    """
    for name, command in catalog.items():
        if name != command.name:
            raise ConfigurationError(
                f"Catalog key '{name}' does not match command name '{command.name}'"
            )
        validate_command(command)
    logger.debug(f"Validated command catalog with {len(catalog)} commands")


def build_catalog(commands: tuple[CommandDefinition, ...]) -> dict[str, CommandDefinition]:
    """
    Index command definitions by name, rejecting duplicate names.

    Raises:
        ConfigurationError: If two definitions share a name or one is invalid
    """
    catalog: dict[str, CommandDefinition] = {}
    for command in commands:
        if command.name in catalog:
            raise ConfigurationError(f"Duplicate command name '{command.name}'")
        catalog[command.name] = command
    validate_catalog(catalog)
    return catalog


COMMANDS: Mapping[str, CommandDefinition] = MappingProxyType(build_catalog(_CATALOG))


def get_command(
    name: str,
    catalog: Mapping[str, CommandDefinition] = COMMANDS,
) -> CommandDefinition:
    """
    Look up a command definition by name.

    Args:
        name: Command name (e.g., "get_lead")
        catalog: Catalog to search (defaults to the built-in one)

    Returns:
        The matching CommandDefinition

    Raises:
        UnknownCommandError: If the command is not in the catalog
    """
    if name not in catalog:
        raise UnknownCommandError(name)

    return catalog[name]


def list_commands(catalog: Mapping[str, CommandDefinition] = COMMANDS) -> list[str]:
    """Return the names of all catalog commands, sorted."""
    return sorted(catalog)
