from textwrap import dedent
import inspect
import json
import sys
import re
import click
import traceback
from typing import (
    Any,
    Dict,
    Optional,
    Callable,
    Tuple,
    Union,
    get_origin,
    get_args,
    Literal,
)
from pydantic import BaseModel
from loguru import logger

from .pocket_api import PocketAPI, APIError


# --- Serialization Helper ---
def serialize_output(data: Any) -> Any:
    """
    Recursively serialize data for JSON output, handling Pydantic models,
    lists, and dicts. Fields Pocket did not send are left out.
    """
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json", exclude_unset=True)
    elif isinstance(data, list):
        return [serialize_output(item) for item in data]
    elif isinstance(data, dict):
        return {k: serialize_output(v) for k, v in data.items()}
    return data


# --- Click CLI Setup ---

# Shared options for the API client
shared_options = [
    click.option(
        "--consumer-key",
        envvar="POCKET_PYTHON_API_CONSUMER_KEY",
        help="Pocket consumer key (uses env var if not provided).",
    ),
    click.option(
        "--access-token",
        envvar="POCKET_PYTHON_API_ACCESS_TOKEN",
        help="Pocket access token (uses env var if not provided).",
    ),
    click.option(
        "--credentials",
        "credentials_path",
        envvar="POCKET_PYTHON_API_CREDENTIALS",
        type=click.Path(dir_okay=False),
        help="JSON file holding 'consumer_key' and 'access_token'.",
    ),
    click.option(
        "--api-endpoint",
        envvar="POCKET_PYTHON_API_ENDPOINT",
        help="Pocket v3 API endpoint URL (default: https://getpocket.com/v3/).",
    ),
    click.option(
        "--verify-ssl/--no-verify-ssl",
        default=True,
        help="Verify SSL certificates.",
    ),
    click.option(
        "--verbose",
        "-v",
        is_flag=True,
        default=False,
        help="Enable verbose logging.",
    ),
    click.option(
        "--ascii",
        "ensure_ascii",
        is_flag=True,
        default=False,
        envvar="POCKET_PYTHON_API_ENSURE_ASCII",
        help="Escape non-ASCII characters in the JSON output (default: keep Unicode).",
    ),
]


def add_options(options):
    """Decorator to add a list of click options to a command."""

    def _add_options(func):
        for option in reversed(options):
            func = option(func)
        return func

    return _add_options


@click.group(context_settings=dict(help_option_names=["-h", "--help"]))
@add_options(shared_options)
@click.pass_context
def cli(
    ctx,
    consumer_key,
    access_token,
    credentials_path,
    api_endpoint,
    verify_ssl,
    verbose,
    ensure_ascii,
):
    """
    Pocket Python API Command Line Interface.

    Requires a consumer key and an access token, given as options, through the
    POCKET_PYTHON_API_CONSUMER_KEY / POCKET_PYTHON_API_ACCESS_TOKEN environment
    variables, or in a credentials JSON file.
    """
    ctx.ensure_object(dict)

    if not ((consumer_key and access_token) or credentials_path):
        raise click.UsageError(
            "Credentials are required. Provide --consumer-key and --access-token, "
            "set POCKET_PYTHON_API_CONSUMER_KEY and POCKET_PYTHON_API_ACCESS_TOKEN, "
            "or pass --credentials path/to/credentials.json."
        )

    ctx.obj["CONSUMER_KEY"] = consumer_key
    ctx.obj["ACCESS_TOKEN"] = access_token
    ctx.obj["CREDENTIALS_PATH"] = credentials_path
    ctx.obj["API_ENDPOINT"] = api_endpoint
    ctx.obj["VERIFY_SSL"] = verify_ssl
    ctx.obj["VERBOSE"] = verbose
    ctx.obj["ENSURE_ASCII"] = ensure_ascii


def click_type_for(annotation: Any) -> Tuple[Any, Optional[Callable[[str], Any]]]:
    """
    Map a parameter annotation to a Click type.

    Returns the Click type and, for Literal choices that are not strings, a
    converter turning the chosen string back into the literal value.
    """
    origin = get_origin(annotation)
    args = get_args(annotation)

    # Unwrap Optional[T]
    if origin is Union and type(None) in args:
        non_none_args = tuple(a for a in args if a is not type(None))
        if len(non_none_args) == 1:
            return click_type_for(non_none_args[0])
        args = non_none_args

    if annotation is int:
        return click.INT, None
    if annotation is float:
        return click.FLOAT, None
    if annotation is bool:
        return click.BOOL, None
    if get_origin(annotation) is Literal:
        choices = get_args(annotation)
        if all(isinstance(c, str) for c in choices):
            return click.Choice(choices, case_sensitive=False), None
        by_name = {str(c): c for c in choices}
        return click.Choice(list(by_name)), by_name.__getitem__
    # Union of numbers, e.g. Optional[Union[int, float]]
    if args and all(a in (int, float) for a in args):
        return click.FLOAT, None
    return click.STRING, None


def parse_docstring_args(docstring: str) -> Dict[str, str]:
    """Extract 'name: description' pairs from the Args section of a docstring."""
    param_descriptions = {}
    in_args_section = False
    current_param = None
    for line in docstring.split("\n"):
        stripped_line = line.strip()
        if stripped_line == "Args:":
            in_args_section = True
        elif stripped_line in ("Returns:", "Raises:"):
            in_args_section = False
        elif in_args_section and stripped_line:
            match = re.match(r"^\s+([a-zA-Z_][a-zA-Z0-9_]*):\s+(.*)$", line)
            if match:
                current_param = match.group(1)
                param_descriptions[current_param] = match.group(2).strip()
                logger.trace(
                    f"Parsed docstring param: '{current_param}' -> '{param_descriptions[current_param]}'"
                )
            elif current_param is not None:
                param_descriptions[current_param] += " " + stripped_line
    return param_descriptions


def create_click_command(
    api_method_name: str, api_method: Callable
) -> Optional[click.Command]:
    """
    Dynamically creates a Click command for a given API method,
    inspecting its signature for arguments. Returns None if creation fails.
    """
    try:
        sig = inspect.signature(api_method)
        params = [p for p in sig.parameters.values() if p.name != "self"]
    except (ValueError, TypeError) as e:
        logger.warning(f"Could not get signature for method '{api_method_name}': {e}")
        return None

    converters: Dict[str, Callable[[str], Any]] = {}

    def command_func_factory(method_name, signature):
        @click.pass_context
        def command_func(ctx, **kwargs):
            """Dynamically generated command function wrapper."""
            verbose = ctx.obj["VERBOSE"]
            ensure_ascii_output = ctx.obj["ENSURE_ASCII"]

            try:
                api = PocketAPI(
                    consumer_key=ctx.obj["CONSUMER_KEY"],
                    access_token=ctx.obj["ACCESS_TOKEN"],
                    credentials_path=ctx.obj["CREDENTIALS_PATH"],
                    api_endpoint=ctx.obj["API_ENDPOINT"],
                    verify_ssl=ctx.obj["VERIFY_SSL"],
                    verbose=verbose,
                )
                instance_method = getattr(api, method_name)

                valid_arg_names = set(signature.parameters.keys())
                call_args = {
                    k: v
                    for k, v in kwargs.items()
                    if v is not None and k in valid_arg_names
                }
                for name, convert in converters.items():
                    if name in call_args:
                        call_args[name] = convert(call_args[name])

                logger.debug(
                    f"Calling API method '{method_name}' with args: {call_args}"
                )
                result = instance_method(**call_args)

                if result is not None:
                    output_data = serialize_output(result)
                    click.echo(
                        json.dumps(
                            output_data, indent=2, ensure_ascii=ensure_ascii_output
                        )
                    )
                else:
                    logger.debug("Operation successful (No content returned).")

            except (APIError, ValueError) as e:
                logger.error(f"Error: {e}")
                sys.exit(1)
            except Exception as e:
                logger.error(f"An unexpected error occurred: {e}")
                if verbose:
                    logger.debug(traceback.format_exc())
                sys.exit(1)

        command_func.__name__ = method_name
        return command_func

    command_func = command_func_factory(api_method_name, sig)

    docstring = dedent(
        api_method.__doc__ or f"Execute the {api_method_name} API operation."
    )
    help_text = " ".join(docstring.split("\n\n")[0].splitlines()).strip()
    full_help = docstring.replace("\n", "\n\n")
    param_descriptions = parse_docstring_args(docstring)

    click_params = []
    for param in params:
        param_name_cli = param.name.replace("_", "-")
        is_required_in_sig = param.default is inspect.Parameter.empty
        default_value = None if is_required_in_sig else param.default

        click_type, converter = click_type_for(param.annotation)
        if converter is not None:
            converters[param.name] = converter

        param_help = param_descriptions.get(param.name, f"Parameter '{param.name}'.")
        if isinstance(click_type, click.Choice):
            param_help += f" (Choices: {', '.join(click_type.choices)})"

        click_params.append(
            click.Option(
                [f"--{param_name_cli}"],
                type=click_type,
                required=is_required_in_sig,
                default=default_value,
                help=param_help,
                show_default=default_value is not None,
            )
        )

    try:
        return click.Command(
            name=api_method_name.replace("_", "-"),
            callback=command_func,
            params=click_params,
            help=full_help,
            short_help=help_text,
        )
    except Exception as e:
        logger.warning(f"Failed to create click command for '{api_method_name}': {e}")
        return None


# --- Dynamically Add Commands to CLI Group ---
def add_commands_to_cli(cli_group):
    """
    Inspects the PocketAPI class *statically* to find public methods
    and adds them as Click commands. Does NOT require credentials for inspection.
    """
    logger.debug("Statically inspecting PocketAPI class and generating commands...")

    added_count = 0
    for name, member in inspect.getmembers(PocketAPI):
        if not name.startswith("_") and inspect.isfunction(member):
            command = create_click_command(name, member)
            if command:
                cli_group.add_command(command)
                added_count += 1
            else:
                logger.warning(f"Skipped command generation for method: {name}")

    if added_count == 0:
        raise click.ClickException(
            "No API commands were generated. Check the PocketAPI class definition."
        )
    logger.debug(f"Added {added_count} API commands.")


add_commands_to_cli(cli)

# Main entry point for the script
if __name__ == "__main__":
    cli(obj={})
