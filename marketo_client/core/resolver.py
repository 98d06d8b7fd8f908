"""
Request resolution

Turns a command name plus an argument mapping into a RequestDescriptor:
path placeholders are substituted, declared parameters are placed in the
query string or JSON body, and array parameters are rewritten into the
repeated-key form Marketo expects.
"""

import logging
import re
from typing import Any, Mapping
from urllib.parse import quote, urlencode

from .commands import COMMANDS, get_command
from .models import (
    CommandDefinition,
    MissingParameterError,
    ParamLocation,
    RequestDescriptor,
)

logger = logging.getLogger(__name__)


def _flatten(key: str, value: Any) -> list[tuple[str, str]]:
    """Flatten one query value into (key, value) pairs using indexed keys."""
    if value is None:
        return []
    if isinstance(value, bool):
        return [(key, "true" if value else "false")]
    if isinstance(value, (list, tuple)):
        pairs = []
        for index, item in enumerate(value):
            pairs.extend(_flatten(f"{key}[{index}]", item))
        return pairs
    if isinstance(value, dict):
        pairs = []
        for sub_key, item in value.items():
            pairs.extend(_flatten(f"{key}[{sub_key}]", item))
        return pairs
    return [(key, str(value))]


def encode_query(params: Mapping[str, Any] | list[tuple[str, Any]]) -> str:
    """
    Encode query parameters the way generic form encoders do.

    Sequences and mappings become indexed keys, so {"id": [1, 2]} encodes
    as id%5B0%5D=1&id%5B1%5D=2. Use fix_repeated_params to turn those into
    repeated bare keys.

    Args:
        params: Mapping or ordered pairs of parameter names to values

    Returns:
        The encoded query string, without a leading '?'
    """
    items = params.items() if isinstance(params, Mapping) else params
    pairs: list[tuple[str, str]] = []
    for key, value in items:
        pairs.extend(_flatten(key, value))
    return urlencode(pairs)


def fix_repeated_params(url: str, param_name: str) -> str:
    """
    Rewrite indexed array keys into repeated bare keys.

    Marketo expects id=1&id=2, while form encoders produce id[0]=1&id[1]=2
    (or its percent-encoded id%5B0%5D=1 form). Only keys that start a
    query pair are rewritten, so listId[0] is left alone when fixing id.

    Args:
        url: URL or query string to rewrite
        param_name: Bare parameter name (e.g., "id")

    Returns:
        The rewritten URL; unchanged if no indexed occurrences exist
    """
    pattern = re.compile(
        r"(^|[?&])" + re.escape(param_name) + r"(?:%5[Bb]|\[)\d+(?:%5[Dd]|\])="
    )
    return pattern.sub(lambda m: f"{m.group(1)}{param_name}=", url)


def _is_missing(value: Any) -> bool:
    """None, empty strings and empty sequences do not satisfy a required parameter."""
    if value is None:
        return True
    if isinstance(value, (str, list, tuple, dict)):
        return len(value) == 0
    return False


def _substitute_path(command: CommandDefinition, args: dict[str, Any]) -> str:
    """Substitute {placeholder}s in the command path with URL-quoted values."""
    path = command.path
    for param in command.params:
        if param.location != ParamLocation.PATH:
            continue
        value = quote(str(args[param.name]), safe="")
        path = path.replace(f"{{{param.name}}}", value)
    return path


def build_request(
    command: CommandDefinition,
    args: Mapping[str, Any],
    rest_url: str,
) -> RequestDescriptor:
    """
    Build a request descriptor for a command.

    Args:
        command: The command definition
        args: Argument mapping; keys not declared on the command are passed
            through to the command's passthrough location
        rest_url: Versioned REST prefix (e.g., "https://x.mktorest.com/rest/v1")

    Returns:
        The resolved RequestDescriptor

    Raises:
        MissingParameterError: If a required parameter is absent, None or empty
    """
    for name in command.required_params:
        if _is_missing(args.get(name)):
            raise MissingParameterError(command.name, name)

    remaining = dict(args)
    path = _substitute_path(command, remaining)

    query: list[tuple[str, Any]] = []
    body: dict[str, Any] = {}

    for param in command.params:
        value = remaining.pop(param.name, None)
        if value is None:
            continue
        if param.location == ParamLocation.PATH:
            if param.echo_to_query:
                query.append((param.name, value))
        elif param.location == ParamLocation.QUERY:
            query.append((param.name, value))
        else:
            body[param.name] = value

    query.extend(command.fixed_query)

    # Undeclared arguments pass through untouched
    for key, value in remaining.items():
        if value is None:
            continue
        if command.passthrough_location == ParamLocation.QUERY:
            query.append((key, value))
        else:
            body[key] = value

    url = f"{rest_url.rstrip('/')}/{path.lstrip('/')}"
    query_string = encode_query(query)
    if query_string:
        url = f"{url}?{query_string}"

    if command.uses_array_fixup:
        for name in command.repeated_params:
            url = fix_repeated_params(url, name)

    logger.debug(f"Resolved {command.name}: {command.method.value} {url}")

    return RequestDescriptor(
        command=command.name,
        method=command.method,
        url=url,
        body=body or None,
    )


def resolve(
    command_name: str,
    args: Mapping[str, Any],
    rest_url: str,
    catalog: Mapping[str, CommandDefinition] = COMMANDS,
) -> RequestDescriptor:
    """
    Look up a command by name and build its request.

    Raises:
        UnknownCommandError: If the command is not in the catalog
        MissingParameterError: If a required parameter is absent
    """
    command = get_command(command_name, catalog)
    return build_request(command, args, rest_url)
