import json
from pathlib import Path
from typing import Union

import pydantic
from loguru import logger

from .datatypes import Credentials


def load_credentials(path: Union[str, Path]) -> Credentials:
    """
    Load the consumer key and access token from a JSON file.

    The file must hold exactly one object with the keys ``consumer_key`` and
    ``access_token`` (both strings). Anything else is rejected.

    Args:
        path: Path to the credentials JSON file.

    Returns:
        Credentials: The validated credential pair.

    Raises:
        ValueError: If the file cannot be read, is not valid JSON, or does not
                    match the expected shape.
    """
    path = Path(path).expanduser()
    logger.debug(f"Loading Pocket credentials from: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            content = json.load(f)
    except FileNotFoundError as e:
        logger.error(f"Credentials file not found at: {path}")
        raise ValueError(f"Credentials file not found: {path}") from e
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse credentials file at {path}: {e}")
        raise ValueError(f"Invalid JSON in credentials file {path}: {e}") from e

    try:
        credentials = Credentials.model_validate(content)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"]) or "<root>"
        logger.error(f"Credentials file {path} is malformed at '{location}'")
        raise ValueError(
            f"Malformed credentials file {path}: '{location}' {first['msg']}"
        ) from e

    logger.debug("Credentials loaded successfully.")
    return credentials
