import pytest

from pocket_python_api import ValidationError
from pocket_python_api.pocket_api import stringify_params, validate_retrieve_params


# --- Input validation through the client ---


def test_non_integer_since(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(since=0.5)
    assert "integer" in str(exc_info.value)
    assert exc_info.value.field == "since"


def test_negative_since(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(since=-1)
    assert "non-negative" in str(exc_info.value)
    assert "'since'" in str(exc_info.value)


def test_negative_count(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(count=-1)
    assert "positive" in str(exc_info.value)


def test_zero_count(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(count=0)
    message = str(exc_info.value)
    assert "positive" in message
    assert "nonzero" in message


def test_non_integer_count(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(count=2.5)
    assert exc_info.value.field == "count"


def test_negative_offset(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(offset=-1)
    assert "non-negative" in str(exc_info.value)


def test_non_integer_offset(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(offset=1.5)
    message = str(exc_info.value)
    assert "non-negative" in message
    assert "integer" in message


def test_invalid_parameters_never_reach_the_transport(pocket_client, mock_post):
    for bad_args in ({"since": -5}, {"count": 0}, {"offset": -2}, {"count": 0.1}):
        with pytest.raises(ValidationError):
            pocket_client.retrieve(**bad_args)
    assert mock_post.calls == []


# --- validate_retrieve_params ---


def test_omitted_numeric_params_never_fail():
    validate_retrieve_params({})
    validate_retrieve_params({"consumer_key": "k", "access_token": "t"})
    validate_retrieve_params({"since": None, "count": None, "offset": None})


@pytest.mark.parametrize(
    "params",
    [
        {"since": 0},
        {"since": 1700000000},
        {"count": 1},
        {"offset": 0},
        {"since": 10.0, "count": 5.0, "offset": 3.0},
    ],
)
def test_valid_numeric_params(params):
    validate_retrieve_params(params)


def test_first_failing_check_wins():
    with pytest.raises(ValidationError) as exc_info:
        validate_retrieve_params({"since": -1, "count": 0, "offset": -1})
    assert exc_info.value.field == "since"

    with pytest.raises(ValidationError) as exc_info:
        validate_retrieve_params({"count": 0, "offset": -1})
    assert exc_info.value.field == "count"


def test_booleans_are_not_integers():
    with pytest.raises(ValidationError) as exc_info:
        validate_retrieve_params({"count": True})
    assert exc_info.value.field == "count"


@pytest.mark.parametrize("value", [True, False])
def test_boolean_favorite_rejected(value):
    with pytest.raises(ValidationError) as exc_info:
        validate_retrieve_params({"favorite": value})
    assert exc_info.value.field == "favorite"
    assert exc_info.value.constraint == "0 or 1"


def test_integer_favorite_accepted():
    validate_retrieve_params({"favorite": 0})
    validate_retrieve_params({"favorite": 1})


def test_boolean_favorite_never_reaches_the_transport(pocket_client, mock_post):
    with pytest.raises(ValidationError) as exc_info:
        pocket_client.retrieve(favorite=True)
    assert exc_info.value.field == "favorite"
    assert mock_post.calls == []


def test_validation_error_carries_field_and_constraint():
    with pytest.raises(ValidationError) as exc_info:
        validate_retrieve_params({"offset": -3})
    error = exc_info.value
    assert isinstance(error, ValueError)
    assert error.field == "offset"
    assert error.constraint == "a non-negative integer"
    assert str(error) == "If provided, 'offset' must be a non-negative integer"


# --- stringify_params ---


def test_stringify_params_converts_every_value_to_str():
    form = stringify_params(
        {
            "consumer_key": "key",
            "access_token": "token",
            "state": "unread",
            "favorite": 1,
            "since": 1700000000,
            "count": 10.0,
            "offset": 0,
        }
    )
    assert form == {
        "consumer_key": "key",
        "access_token": "token",
        "state": "unread",
        "favorite": "1",
        "since": "1700000000",
        "count": "10",
        "offset": "0",
    }


def test_stringify_params_leaves_out_absent_values():
    form = stringify_params({"tag": None, "search": "python", "domain": None})
    assert form == {"search": "python"}


# --- Request body sent by retrieve ---


def test_retrieve_sends_url_encoded_form(pocket_client, mock_post):
    pocket_client.retrieve(
        state="archive",
        favorite=0,
        tag="_untagged_",
        content_type="article",
        sort="newest",
        detail_type="complete",
        search="python & rust",
        domain="example.com",
        since=1700000000,
        count=10,
        offset=20,
    )

    assert len(mock_post.calls) == 1
    call = mock_post.calls[0]
    assert call["url"] == "https://getpocket.com/v3/get"
    assert call["headers"]["Content-Type"].startswith(
        "application/x-www-form-urlencoded"
    )
    assert call["headers"]["X-Accept"] == "application/json"
    assert isinstance(call["data"], str)
    assert mock_post.last_form == {
        "consumer_key": "<placeholder>",
        "access_token": "<placeholder>",
        "state": "archive",
        "favorite": "0",
        "tag": "_untagged_",
        "contentType": "article",
        "sort": "newest",
        "detailType": "complete",
        "search": "python & rust",
        "domain": "example.com",
        "since": "1700000000",
        "count": "10",
        "offset": "20",
    }


def test_retrieve_without_options_only_sends_credentials(pocket_client, mock_post):
    pocket_client.retrieve()
    assert mock_post.last_form == {
        "consumer_key": "<placeholder>",
        "access_token": "<placeholder>",
    }
