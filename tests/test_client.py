from unittest.mock import Mock, patch

import pytest
import requests

from aso_sync.core import AppStoreClient, GooglePlayClient, create_client
from aso_sync.core.app_store import AppStoreTransport
from aso_sync.core.auth import StaticTokenProvider
from aso_sync.core.google_play import GooglePlayTransport
from aso_sync.errors import (
    AuthenticationError,
    ConfigurationMissing,
    NotFoundError,
    RateLimitError,
    TransportError,
    VersionNotFound,
    VersionStateConflict,
)
from aso_sync.sync.documents import LocaleDocument
from aso_sync.sync.models import Platform
from aso_sync.sync.session import EditSession


def _response(status=200, payload=None, text=None):
    response = Mock()
    response.status_code = status
    response.ok = status < 400
    if payload is None and text is None:
        response.content = b""
        response.json.side_effect = ValueError("no body")
        response.text = ""
    elif payload is None:
        response.content = text.encode()
        response.json.side_effect = ValueError("not json")
        response.text = text
    else:
        response.content = b"{...}"
        response.json.return_value = payload
        response.text = str(payload)
    return response


def _app_store_transport():
    return AppStoreTransport(
        "https://api.example.com/v1/", StaticTokenProvider("tok"), identity="KEY"
    )


def _play_transport():
    return GooglePlayTransport(
        "https://play.example.com/apps", StaticTokenProvider("tok"), identity="sa"
    )


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


@patch("aso_sync.core.transport.requests.Session.request")
def test_request_sends_bearer_token_and_returns_json(mock_request):
    """Test that a successful request returns the decoded body."""
    mock_request.return_value = _response(200, {"data": []})
    transport = _app_store_transport()

    result = transport.request("GET", "/apps", params={"limit": 1})

    assert result == {"data": []}
    args, kwargs = mock_request.call_args
    assert args == ("GET", "https://api.example.com/v1/apps")
    assert kwargs["headers"]["Authorization"] == "Bearer tok"
    assert kwargs["params"] == {"limit": 1}
    assert kwargs["timeout"] == (10, 60)


@patch("aso_sync.core.transport.requests.Session.request")
def test_empty_response_returns_empty_dict(mock_request):
    """Test that 204 No Content decodes to an empty dict."""
    mock_request.return_value = _response(204)

    assert _play_transport().request("DELETE", "/app/edits/1") == {}


def test_url_for_passes_absolute_urls_through():
    transport = _app_store_transport()
    assert transport.url_for("https://other.example.com/x") == "https://other.example.com/x"
    assert transport.url_for("apps/1") == "https://api.example.com/v1/apps/1"


@pytest.mark.parametrize(
    "status, error_cls",
    [
        (401, AuthenticationError),
        (403, AuthenticationError),
        (404, NotFoundError),
        (429, RateLimitError),
    ],
)
@patch("aso_sync.core.transport.requests.Session.request")
def test_status_maps_to_error_class(mock_request, status, error_cls):
    mock_request.return_value = _response(
        status, {"errors": [{"code": "X", "detail": "nope"}]}
    )

    with pytest.raises(error_cls) as exc_info:
        _app_store_transport().request("GET", "/apps")

    assert exc_info.value.status == status
    assert exc_info.value.code == "X"


@patch("aso_sync.core.transport.requests.Session.request")
def test_server_error_is_plain_transport_error(mock_request):
    mock_request.return_value = _response(500, text="<html>oops</html>")

    with pytest.raises(TransportError) as exc_info:
        _app_store_transport().request("GET", "/apps")

    assert type(exc_info.value) is TransportError
    assert exc_info.value.details == {"raw": "<html>oops</html>"}


@patch("aso_sync.core.transport.requests.Session.request")
def test_app_store_state_error_is_version_conflict(mock_request):
    """Test that 409 STATE_ERROR is recognised from the error code."""
    mock_request.return_value = _response(
        409,
        {
            "errors": [
                {"code": "ENTITY_ERROR", "detail": "other"},
                {"code": "STATE_ERROR.ENTITY_STATE_INVALID", "detail": "locked"},
            ]
        },
    )

    with pytest.raises(VersionStateConflict) as exc_info:
        _app_store_transport().request("PATCH", "/appInfoLocalizations/1")

    assert exc_info.value.code == "STATE_ERROR.ENTITY_STATE_INVALID"
    assert "locked" in str(exc_info.value)


@patch("aso_sync.core.transport.requests.Session.request")
def test_app_store_409_without_state_code_is_not_conflict(mock_request):
    mock_request.return_value = _response(
        409, {"errors": [{"code": "ENTITY_ERROR.ATTRIBUTE.INVALID", "detail": "bad"}]}
    )

    with pytest.raises(TransportError) as exc_info:
        _app_store_transport().request("PATCH", "/appInfoLocalizations/1")

    assert not isinstance(exc_info.value, VersionStateConflict)


@pytest.mark.parametrize("status", [409, 412])
@patch("aso_sync.core.transport.requests.Session.request")
def test_play_failed_precondition_is_version_conflict(mock_request, status):
    mock_request.return_value = _response(
        status, {"error": {"status": "FAILED_PRECONDITION", "message": "in review"}}
    )

    with pytest.raises(VersionStateConflict) as exc_info:
        _play_transport().request("PUT", "/app/edits/1/tracks/production")

    assert exc_info.value.code == "FAILED_PRECONDITION"


@patch("aso_sync.core.transport.requests.Session.request")
def test_play_bad_request_is_not_conflict(mock_request):
    mock_request.return_value = _response(
        400, {"error": {"status": "FAILED_PRECONDITION", "message": "bad"}}
    )

    with pytest.raises(TransportError) as exc_info:
        _play_transport().request("PUT", "/app/edits/1/tracks/production")

    assert not isinstance(exc_info.value, VersionStateConflict)


@patch("aso_sync.core.transport.requests.Session.request")
def test_timeout_maps_to_transport_error(mock_request):
    mock_request.side_effect = requests.Timeout("slow")

    with pytest.raises(TransportError) as exc_info:
        _play_transport().request("GET", "/x")

    assert exc_info.value.code == "timeout"
    assert exc_info.value.status is None


@patch("aso_sync.core.transport.requests.Session.request")
def test_connection_error_maps_to_transport_error(mock_request):
    mock_request.side_effect = requests.ConnectionError("refused")

    with pytest.raises(TransportError) as exc_info:
        _play_transport().request("GET", "/x")

    assert exc_info.value.code == "connection_error"


@patch("aso_sync.core.transport.requests.Session.request")
def test_non_json_success_body_maps_to_transport_error(mock_request):
    """Test that an HTML page with a 200 status is not returned as data."""
    mock_request.return_value = _response(200, text="<html>proxy</html>")

    with pytest.raises(TransportError) as exc_info:
        _app_store_transport().request("GET", "/apps")

    assert exc_info.value.code == "invalid_response"
    assert exc_info.value.status == 200


# ---------------------------------------------------------------------------
# App Store client
# ---------------------------------------------------------------------------


def test_resolve_app_id_passes_numeric_ids_through():
    transport = Mock()
    client = AppStoreClient(transport)

    assert client.resolve_app_id("123456") == "123456"
    transport.request.assert_not_called()


def test_resolve_app_id_looks_up_and_caches_bundle_id():
    transport = Mock()
    transport.request.return_value = {"data": [{"id": "987"}]}
    client = AppStoreClient(transport)

    assert client.resolve_app_id("com.example.app") == "987"
    assert client.resolve_app_id("com.example.app") == "987"

    transport.request.assert_called_once_with(
        "GET", "/apps", params={"filter[bundleId]": "com.example.app"}
    )


def test_resolve_app_id_unknown_bundle_raises():
    transport = Mock()
    transport.request.return_value = {"data": []}

    with pytest.raises(NotFoundError):
        AppStoreClient(transport).resolve_app_id("com.missing")


def test_app_store_list_versions_builds_records():
    transport = Mock()
    transport.request.return_value = {
        "data": [
            {
                "id": "v1",
                "attributes": {"versionString": "2.1.0", "appStoreState": "READY_FOR_SALE"},
            }
        ]
    }

    records = AppStoreClient(transport).list_versions("42")

    assert records[0].id == "v1"
    assert records[0].version_string == "2.1.0"
    assert records[0].platform is Platform.APP_STORE
    transport.request.assert_called_once_with(
        "GET",
        "/apps/42/appStoreVersions",
        params={"filter[platform]": "IOS", "limit": 50},
    )


def test_app_store_create_version_posts_relationship():
    transport = Mock()
    transport.request.return_value = {
        "data": {
            "id": "v2",
            "attributes": {"versionString": "2.1.1", "appStoreState": "PREPARE_FOR_SUBMISSION"},
        }
    }

    record = AppStoreClient(transport).create_version("42", "2.1.1")

    assert record.editable
    method, path = transport.request.call_args.args
    body = transport.request.call_args.kwargs["json"]["data"]
    assert (method, path) == ("POST", "/appStoreVersions")
    assert body["attributes"]["versionString"] == "2.1.1"
    assert body["relationships"]["app"]["data"]["id"] == "42"


def test_mutate_version_field_patches_existing_localization():
    transport = Mock()
    transport.request.side_effect = [{"data": [{"id": "loc-1"}]}, {}]

    AppStoreClient(transport).mutate_version_field(
        "42", "v1", "en-US", {"description": "Body"}
    )

    method, path = transport.request.call_args.args
    assert (method, path) == ("PATCH", "/appStoreVersionLocalizations/loc-1")
    assert transport.request.call_args.kwargs["json"]["data"]["attributes"] == {
        "description": "Body"
    }


def test_mutate_version_field_creates_missing_localization():
    transport = Mock()
    transport.request.side_effect = [{"data": []}, {}]

    AppStoreClient(transport).mutate_version_field(
        "42", "v1", "ko", {"description": "본문"}
    )

    method, path = transport.request.call_args.args
    body = transport.request.call_args.kwargs["json"]["data"]
    assert (method, path) == ("POST", "/appStoreVersionLocalizations")
    assert body["attributes"] == {"locale": "ko", "description": "본문"}


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123456789", "123456789"),
        ("https://apps.apple.com/us/app/example/id123456789?l=ko", "123456789"),
        ("com.example.app", None),
        ("", None),
    ],
)
def test_app_store_extract_app_id(text, expected):
    assert AppStoreClient(Mock()).extract_app_id(text) == expected


# ---------------------------------------------------------------------------
# Google Play client
# ---------------------------------------------------------------------------


def test_play_begin_session_returns_edit_id():
    transport = Mock()
    transport.request.return_value = {"id": "edit-9", "expiryTimeSeconds": "1"}

    assert GooglePlayClient(transport).begin_session("com.example") == "edit-9"
    transport.request.assert_called_once_with("POST", "/com.example/edits", json={})


def test_play_operations_require_open_session():
    client = GooglePlayClient(Mock())
    session = EditSession("edit-1", "com.example")
    session.mark_aborted()

    with pytest.raises(ValueError):
        client.list_locales("com.example")
    with pytest.raises(AssertionError):
        client.list_locales("com.example", session=session)


def test_play_mutate_listing_creates_missing_language():
    transport = Mock()
    transport.request.side_effect = [NotFoundError("missing", status=404), {}]
    session = EditSession("edit-1", "com.example")

    GooglePlayClient(transport).mutate_listing(
        session, "ko-KR", LocaleDocument(locale="ko-KR", title="앱", subtitle="짧게")
    )

    method, path = transport.request.call_args.args
    assert (method, path) == ("PUT", "/com.example/edits/edit-1/listings/ko-KR")
    assert transport.request.call_args.kwargs["json"] == {
        "language": "ko-KR",
        "title": "앱",
        "shortDescription": "짧게",
    }


def test_play_update_release_notes_targets_newest_release():
    track = {
        "track": "production",
        "releases": [
            {"name": "1.9.0", "status": "completed"},
            {
                "name": "1.10.0",
                "status": "draft",
                "releaseNotes": [{"language": "ko-KR", "text": "기존"}],
            },
        ],
    }
    transport = Mock()
    transport.request.side_effect = [track, {}]
    session = EditSession("edit-1", "com.example")

    written = GooglePlayClient(transport).update_release_notes(
        session, {"en-US": "Fixes"}
    )

    assert written == ["en-US"]
    put_body = transport.request.call_args.kwargs["json"]
    assert "releaseNotes" not in put_body["releases"][0]
    assert put_body["releases"][1]["releaseNotes"] == [
        {"language": "en-US", "text": "Fixes"},
        {"language": "ko-KR", "text": "기존"},
    ]


def test_play_update_release_notes_without_release_raises():
    transport = Mock()
    transport.request.side_effect = NotFoundError("no track", status=404)
    session = EditSession("edit-1", "com.example")

    with pytest.raises(VersionNotFound):
        GooglePlayClient(transport).update_release_notes(session, {"en-US": "x"})


def test_play_release_name_falls_back_to_version_code():
    transport = Mock()
    transport.request.return_value = {
        "releases": [{"versionCodes": ["41", "42"], "status": "completed"}]
    }
    session = EditSession("edit-1", "com.example")

    records = GooglePlayClient(transport).list_versions("com.example", session)

    assert records[0].version_string == "42"
    assert records[0].id == "production:41,42"


def test_play_record_id_survives_new_releases():
    transport = Mock()
    transport.request.side_effect = [
        {"releases": [{"name": "1.0.0", "status": "completed"}]},
        {
            "releases": [
                {"name": "1.1.0", "status": "draft"},
                {"name": "1.0.0", "status": "completed"},
            ]
        },
    ]
    client = GooglePlayClient(transport)
    session = EditSession("edit-1", "com.example")

    before = client.list_versions("com.example", session)
    after = client.list_versions("com.example", session)

    assert before[0] == after[1]
    assert after[1].id == "production:1.0.0"


def test_play_create_version_sends_version_codes():
    transport = Mock()
    transport.request.side_effect = [
        {"releases": [{"name": "1.0.0", "status": "completed"}]},
        {},
    ]
    session = EditSession("edit-1", "com.example")

    record = GooglePlayClient(transport).create_version(
        "com.example", "1.1.0", session, version_codes=[42, 43]
    )

    put_body = transport.request.call_args.kwargs["json"]
    assert put_body["releases"][0] == {
        "name": "1.1.0",
        "status": "draft",
        "versionCodes": ["42", "43"],
    }
    assert put_body["releases"][1]["name"] == "1.0.0"
    assert record.id == "production:1.1.0"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("com.example.app", "com.example.app"),
        ("https://play.google.com/store/apps/details?id=com.example.app&hl=en", "com.example.app"),
        ("not a package", None),
    ],
)
def test_play_extract_app_id(text, expected):
    assert GooglePlayClient(Mock()).extract_app_id(text) == expected


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_create_client_builds_both_stores(mock_config):
    app_store = create_client(Platform.APP_STORE, mock_config)
    play = create_client(Platform.GOOGLE_PLAY, mock_config)

    assert isinstance(app_store, AppStoreClient)
    assert app_store.transport.identity == "KEY123"
    assert isinstance(play, GooglePlayClient)
    assert play.transport.identity == "sync@example.iam.gserviceaccount.com"
    assert play.transport.timeout == (10, 60.0)


def test_create_client_without_credentials_raises(mock_config):
    from aso_sync.config import Config

    config = Config(registry_path=mock_config.registry_path)

    with pytest.raises(ConfigurationMissing):
        create_client(Platform.APP_STORE, config)
