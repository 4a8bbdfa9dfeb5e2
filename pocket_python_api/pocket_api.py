import os
import re
import sys
import json
from pathlib import Path
from typing import Optional, Dict, Any, Mapping, Union, Literal
from urllib.parse import urljoin, urlencode

import pydantic
import requests
from beartype import beartype
from loguru import logger

from . import datatypes
from .credentials import load_credentials

DEFAULT_API_ENDPOINT = "https://getpocket.com/v3/"

# Parameters that must never show up in logs
SECRET_PARAMS = ("consumer_key", "access_token")

# --- Custom Exceptions ---


class APIError(Exception):
    """Base exception class for Pocket API errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message

    def __str__(self) -> str:
        if self.status_code:
            return f"[Status Code: {self.status_code}] {self.message}"
        return self.message


class ValidationError(APIError, ValueError):
    """Raised before any network activity when a request parameter is out of contract."""

    def __init__(self, field: str, constraint: str):
        super().__init__(f"If provided, '{field}' must be {constraint}")
        self.field = field
        self.constraint = constraint


class TransportError(APIError):
    """Raised when the HTTP exchange with Pocket fails."""


class AuthenticationError(TransportError):
    """Exception raised for authentication errors (401)."""

    def __init__(self, message: str):
        super().__init__(message, status_code=401)


class SchemaValidationError(APIError):
    """Raised when a response does not match the expected envelope/item schema."""

    def __init__(self, message: str, path: str, kind: str):
        super().__init__(message)
        self.path = path
        self.kind = kind


class NormalizationError(APIError):
    """Raised when a schema-valid field cannot be converted to its native type."""

    def __init__(self, field: str, value: Any, expected: str):
        super().__init__(f"Cannot normalize '{field}': {value!r} is not {expected}")
        self.field = field
        self.value = value


# --- Request Validation and Serialization ---


def _is_integer(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and value.is_integer()


@beartype
def validate_retrieve_params(params: Mapping[str, Any]) -> None:
    """
    Check the numeric retrieve parameters. The first failing check wins.

    Absent parameters (missing or None) are never checked.

    Raises:
        ValidationError: If 'since', 'count' or 'offset' is out of contract,
            or if 'favorite' is a boolean.
    """
    since = params.get("since")
    count = params.get("count")
    offset = params.get("offset")

    if since is not None and (not _is_integer(since) or since < 0):
        raise ValidationError(
            "since", "a non-negative integer (more specifically, a UNIX timestamp)"
        )
    if count is not None and (not _is_integer(count) or count <= 0):
        # Pocket returns everything when count is missing, so zero is refused
        # here instead of being forwarded.
        raise ValidationError("count", "a positive, nonzero integer")
    if offset is not None and (not _is_integer(offset) or offset < 0):
        raise ValidationError("offset", "a non-negative integer")
    # True == 1, so Literal[0, 1] alone lets booleans through
    if isinstance(params.get("favorite"), bool):
        raise ValidationError("favorite", "0 or 1")


@beartype
def stringify_params(params: Mapping[str, Any]) -> Dict[str, str]:
    """
    Flatten the parameters into the string mapping sent as a form body.

    None values are left out. Every other value is converted to its string
    representation; integral numbers never carry a fractional part.
    """
    stringified = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, bool) or _is_integer(value):
            stringified[key] = str(int(value))
        else:
            stringified[key] = str(value)
    return stringified


# --- Response Validation and Normalization ---

_DIGIT_STRING = re.compile(r"[0-9]+")

BOOLEAN_ITEM_FIELDS = ("favorite", "is_article")
INTEGER_ITEM_FIELDS = (
    "word_count",
    "time_added",
    "time_updated",
    "time_read",
    "time_favorited",
)
MEDIA_TYPE_ITEM_FIELDS = ("has_image", "has_video")


@beartype
def validate_retrieve_response(data: Any) -> datatypes.RawRetrieveDataResponse:
    """
    Validate a raw JSON payload against the closed envelope/item schema.

    Raises:
        SchemaValidationError: On the first missing field, wrong type or
                               unexpected extra field.
    """
    try:
        return datatypes.RawRetrieveDataResponse.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0]
        path = ".".join(str(part) for part in first["loc"]) or "<root>"
        kind = first["type"]
        message = f"Response does not match the expected schema at '{path}': {first['msg']} ({kind})"
        logger.error(message)
        if e.error_count() > 1:
            logger.debug(f"{e.error_count() - 1} further schema mismatch(es) ignored.")
        raise SchemaValidationError(message, path=path, kind=kind) from e


def _parse_digit_string(field: str, value: str) -> int:
    if not _DIGIT_STRING.fullmatch(value):
        raise NormalizationError(field, value, "a base-10 digit string")
    return int(value)


def _parse_binary_code(field: str, value: str) -> bool:
    if value == "1":
        return True
    if value == "0":
        return False
    raise NormalizationError(field, value, 'one of "0" or "1"')


def _parse_code(field: str, value: str, codes: Mapping[str, Any]) -> Any:
    try:
        return codes[value]
    except KeyError:
        expected = "one of " + ", ".join(f'"{code}"' for code in codes)
        raise NormalizationError(field, value, expected) from None


@beartype
def normalize_response_item(
    item: datatypes.RawResponseItem,
) -> datatypes.ResponseItem:
    """
    Convert the digit-string encodings of one item to native types.

    Only the fields present on the wire are carried over, so a field Pocket
    omitted is still unset on the returned item.

    Raises:
        NormalizationError: If a present field cannot be converted.
    """
    fields = {name: getattr(item, name) for name in item.model_fields_set}

    for name in BOOLEAN_ITEM_FIELDS:
        if name in fields:
            fields[name] = _parse_binary_code(name, fields[name])
    for name in INTEGER_ITEM_FIELDS:
        if name in fields:
            fields[name] = _parse_digit_string(name, fields[name])
    if "status" in fields:
        fields["status"] = _parse_code(
            "status", fields["status"], datatypes.ITEM_STATUS_CODES
        )
    for name in MEDIA_TYPE_ITEM_FIELDS:
        if name in fields:
            fields[name] = _parse_code(
                name, fields[name], datatypes.ITEM_MEDIA_TYPE_CODES
            )

    return datatypes.ResponseItem(**fields)


@beartype
def normalize_retrieve_response(
    raw: datatypes.RawRetrieveDataResponse,
) -> datatypes.RetrieveDataResponse:
    """Normalize every item of a validated envelope. Any failure aborts the whole response."""
    items = {}
    for item_key, item in raw.list.items():
        try:
            items[item_key] = normalize_response_item(item)
        except NormalizationError as e:
            logger.error(f"Failed to normalize item '{item_key}': {e}")
            raise
    return datatypes.RetrieveDataResponse(
        status=raw.status,
        complete=raw.complete,
        error=raw.error,
        search_meta=raw.search_meta,
        since=raw.since,
        list=items,
    )


@beartype
def parse_retrieve_response(data: Any) -> datatypes.RetrieveDataResponse:
    """
    Validate then normalize a raw retrieve payload.

    Raises:
        SchemaValidationError: If the payload does not match the schema.
        NormalizationError: If a field cannot be converted to its native type.
    """
    raw = validate_retrieve_response(data)
    logger.debug(f"Response schema valid, normalizing {len(raw.list)} item(s).")
    return normalize_retrieve_response(raw)


@beartype
class PocketAPI:
    """
    A Python client for the Pocket v3 API retrieve endpoint.

    The official API documentation can be found at:
    https://getpocket.com/developer/docs/v3/retrieve

    Attributes:
        consumer_key (str): The application consumer key.
        access_token (str): The user access token.
        api_endpoint (str): The v3 endpoint of the API (e.g., https://getpocket.com/v3/).
        verify_ssl (bool): Whether SSL verification is enabled.
        verbose (bool): Whether verbose logging is enabled.
        timeout (float): Timeout in seconds for each HTTP request.
    """

    # Version reflects the client library version, updated by bumpver
    VERSION: str = "1.0.0"

    def __init__(
        self,
        consumer_key: Optional[str] = None,
        access_token: Optional[str] = None,
        credentials_path: Optional[Union[str, Path]] = None,
        api_endpoint: Optional[str] = None,
        verify_ssl: bool = True,
        verbose: Optional[bool] = None,
        timeout: Union[float, int] = 60,
    ):
        """
        Initialize the Pocket API client.

        Args:
            consumer_key: Pocket consumer key. Defaults to the POCKET_PYTHON_API_CONSUMER_KEY
                          environment variable, then to the credentials file.
            access_token: Pocket access token. Defaults to the POCKET_PYTHON_API_ACCESS_TOKEN
                          environment variable, then to the credentials file.
            credentials_path: Path to a JSON file holding 'consumer_key' and 'access_token'.
                              Defaults to the POCKET_PYTHON_API_CREDENTIALS environment variable.
                              Only read when a key is not provided otherwise.
            api_endpoint: Override the endpoint for the API. Defaults to the
                          POCKET_PYTHON_API_ENDPOINT environment variable, then to
                          'https://getpocket.com/v3/'.
            verify_ssl: Whether to verify SSL certificates (default: True).
            verbose: Enable verbose logging. If None (default), reads from POCKET_PYTHON_API_VERBOSE environment variable.
                     If True or False, uses the explicit value regardless of environment variable.
            timeout: Timeout in seconds for each HTTP request (default: 60).
        """
        # --- Verbose Setting and Logger Configuration ---
        if verbose is None:
            env_verbose = os.environ.get("POCKET_PYTHON_API_VERBOSE", "").lower()
            self.verbose = env_verbose in ("true", "1", "yes")
            verbose_mess = f"Verbose set to {self.verbose} from POCKET_PYTHON_API_VERBOSE environment variable."
        else:
            self.verbose = verbose
            verbose_mess = f"Verbose explicitly set to {self.verbose} via argument."

        log_level = "DEBUG" if self.verbose else "INFO"
        logger.remove()  # Remove default handler
        if self.verbose:
            logger.add(
                sys.stderr,
                level=log_level,
                format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
            )
            logger.debug("Verbose logging enabled with detailed format.")
        else:
            logger.add(sys.stderr, level=log_level)

        logger.debug(verbose_mess)
        logger.debug("Logger configured for level: {}", log_level)

        # --- Credentials ---
        resolved_consumer_key = consumer_key or os.environ.get(
            "POCKET_PYTHON_API_CONSUMER_KEY"
        )
        resolved_access_token = access_token or os.environ.get(
            "POCKET_PYTHON_API_ACCESS_TOKEN"
        )
        if not (resolved_consumer_key and resolved_access_token):
            resolved_path = credentials_path or os.environ.get(
                "POCKET_PYTHON_API_CREDENTIALS"
            )
            if resolved_path:
                credentials = load_credentials(resolved_path)
                resolved_consumer_key = (
                    resolved_consumer_key or credentials.consumer_key
                )
                resolved_access_token = (
                    resolved_access_token or credentials.access_token
                )

        if not resolved_consumer_key:
            raise ValueError(
                "Consumer key is required. Provide 'consumer_key', set POCKET_PYTHON_API_CONSUMER_KEY, or point 'credentials_path' at a credentials file."
            )
        if not resolved_access_token:
            raise ValueError(
                "Access token is required. Provide 'access_token', set POCKET_PYTHON_API_ACCESS_TOKEN, or point 'credentials_path' at a credentials file."
            )
        self.consumer_key = resolved_consumer_key
        self.access_token = resolved_access_token
        logger.debug("Credentials loaded successfully.")

        # --- Endpoint ---
        env_endpoint = os.environ.get("POCKET_PYTHON_API_ENDPOINT")
        if api_endpoint:
            self.api_endpoint = api_endpoint
            logger.info(f"Using provided endpoint: {self.api_endpoint}")
        elif env_endpoint:
            self.api_endpoint = env_endpoint
            logger.info(
                f"Using endpoint from POCKET_PYTHON_API_ENDPOINT: {self.api_endpoint}"
            )
        else:
            self.api_endpoint = DEFAULT_API_ENDPOINT
            logger.debug(f"Using default endpoint: {self.api_endpoint}")

        if not self.api_endpoint.endswith("/"):
            self.api_endpoint += "/"
            logger.debug(f"Appended trailing slash to endpoint: {self.api_endpoint}")

        self.verify_ssl = verify_ssl
        self.timeout = timeout

        logger.debug("PocketAPI client initialized.")
        logger.debug(f"  Endpoint: {self.api_endpoint}")
        logger.debug(f"  Verify SSL: {self.verify_ssl}")
        logger.debug(f"  Verbose: {self.verbose}")
        logger.debug(f"  Timeout: {self.timeout}s")
        # Credentials are intentionally not logged

    def _call(self, endpoint: str, data: Dict[str, str]) -> Any:
        """
        Internal method to POST a form to the Pocket API and return the decoded JSON.

        Args:
            endpoint: API endpoint path relative to the endpoint (e.g., 'get').
            data: Flat string mapping, sent URL-encoded as the request body.

        Returns:
            The parsed JSON response. The caller is responsible for validating it.

        Raises:
            AuthenticationError: If authentication fails (401).
            TransportError: For other HTTP errors, network failures or a non-JSON body.
        """
        url = urljoin(self.api_endpoint, endpoint.lstrip("/"))
        headers = {
            "Content-Type": "application/x-www-form-urlencoded; charset=UTF-8",
            "X-Accept": "application/json",
            "User-Agent": f"PocketPythonAPI/{self.VERSION}",
        }
        body = urlencode(data)

        if self.verbose:
            log_data = {
                k: ("..." if k in SECRET_PARAMS else v) for k, v in data.items()
            }
            logger.debug("API Request:")
            logger.debug(f"  URL: POST {url}")
            logger.debug(f"  Headers: {headers}")
            logger.debug(f"  Form: {log_data}")

        error_details = ""
        try:
            response = requests.post(
                url,
                data=body,
                headers=headers,
                verify=self.verify_ssl,
                timeout=self.timeout,
            )

            if self.verbose:
                logger.debug("API Response:")
                logger.debug(f"  Status Code: {response.status_code}")
                logger.debug(f"  Headers: {response.headers}")

            # Pocket reports errors through headers rather than the body
            pocket_error = response.headers.get("X-Error")
            pocket_error_code = response.headers.get("X-Error-Code")
            if pocket_error:
                error_details = f" Details: {pocket_error} (code {pocket_error_code})"

            if response.status_code == 401:
                error_msg = f"Authentication failed (401): Check your consumer key and access token. URL: POST {url}.{error_details}"
                logger.error(error_msg)
                raise AuthenticationError(error_msg)

            response.raise_for_status()

            try:
                result = response.json()
            except json.JSONDecodeError as e:
                logger.error(
                    f"API Error: Failed to decode JSON response from POST {url}. Status: {response.status_code}. Content: {response.text[:500]}..."
                )
                raise TransportError(
                    message=f"Failed to parse successful API response JSON from {url}: {e}. Response text: {response.text[:200]}...",
                    status_code=response.status_code,
                ) from e

            if self.verbose:
                log_resp_str = repr(result)
                if len(log_resp_str) > 1000:
                    log_resp_str = log_resp_str[:1000] + "...(truncated)"
                logger.debug(f"  Body (JSON Parsed): {log_resp_str}")
            return result

        except requests.exceptions.HTTPError as e:
            error_status_code = e.response.status_code
            error_body = e.response.text
            max_log_len = 500
            log_details = (
                error_body[:max_log_len] + "..."
                if len(error_body) > max_log_len
                else error_body
            )
            logger.error(
                f"API HTTP Error {error_status_code} for POST {url}.{error_details} Response: {log_details}"
            )
            raise TransportError(
                message=f"API request failed for POST {url}:{error_details or ' ' + log_details}",
                status_code=error_status_code,
            ) from e
        except requests.exceptions.Timeout as e:
            logger.error(f"API Error: Request timed out for POST {url}: {e}")
            raise TransportError(
                message=f"Request timed out for POST {url}: {str(e)}"
            ) from e
        except requests.exceptions.ConnectionError as e:
            logger.error(f"API Error: Connection error for POST {url}: {e}")
            raise TransportError(
                message=f"Connection error for POST {url}: {str(e)}"
            ) from e
        except requests.exceptions.RequestException as e:
            logger.error(
                f"API Error: An unexpected request exception occurred for POST {url}: {e}"
            )
            raise TransportError(
                message=f"API request failed for POST {url}: {str(e)}"
            ) from e

    def retrieve(
        self,
        state: Optional[Literal["unread", "archive", "all"]] = None,
        favorite: Optional[Literal[0, 1]] = None,
        tag: Optional[str] = None,
        content_type: Optional[Literal["article", "video", "image"]] = None,
        sort: Optional[Literal["newest", "oldest", "title", "site"]] = None,
        detail_type: Optional[Literal["simple", "complete"]] = None,
        search: Optional[str] = None,
        domain: Optional[str] = None,
        since: Optional[datatypes.Number] = None,
        count: Optional[datatypes.Number] = None,
        offset: Optional[datatypes.Number] = None,
    ) -> datatypes.RetrieveDataResponse:
        """
        Retrieve saved items. Corresponds to POST /v3/get.

        Parameters are checked locally before anything is sent; a call either
        returns a fully normalized response or raises.

        Args:
            state: Only return items in this state: 'unread', 'archive' or 'all' (optional).
            favorite: 0 for un-favorited items only, 1 for favorited items only (optional).
            tag: Only return items with this tag, or '_untagged_' for untagged items (optional).
            content_type: Only return items of this type: 'article', 'video' or 'image' (optional).
            sort: Sort order: 'newest', 'oldest', 'title' or 'site' (optional).
            detail_type: 'simple' for basic item fields, 'complete' for all of them (optional).
            search: Only return items whose title or url contain this string (optional).
            domain: Only return items from this domain (optional).
            since: Only return items modified since this UNIX timestamp (optional).
            count: Maximum number of items to return, must be positive (optional).
            offset: Number of items to skip, used together with count (optional).

        Returns:
            datatypes.RetrieveDataResponse: The normalized envelope, items keyed by item id.

        Raises:
            ValidationError: If since, count or offset is out of contract. Nothing is sent.
            TransportError: If the HTTP request fails (AuthenticationError on 401).
            SchemaValidationError: If the response does not match the expected schema.
            NormalizationError: If a response field cannot be converted to its native type.
        """
        params = {
            "consumer_key": self.consumer_key,
            "access_token": self.access_token,
            "state": state,
            "favorite": favorite,
            "tag": tag,
            "contentType": content_type,  # camelCase as expected by the API
            "sort": sort,
            "detailType": detail_type,  # camelCase as expected by the API
            "search": search,
            "domain": domain,
            "since": since,
            "count": count,
            "offset": offset,
        }
        validate_retrieve_params(params)
        form = stringify_params(params)
        response_data = self._call("get", form)
        return parse_retrieve_response(response_data)
