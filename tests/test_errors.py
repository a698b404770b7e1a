from models.errors import ErrorKind, PipelineError
from server.errors import error_response
from server.schemas.responses import GENERIC_ERROR_MESSAGE


def test_constructors_tag_kind():
    assert PipelineError.user("bad").kind is ErrorKind.USER
    assert PipelineError.application("broken").kind is ErrorKind.APPLICATION
    assert PipelineError.user("bad").is_user_error
    assert not PipelineError.application("broken").is_user_error


def test_to_dict_omits_missing_data():
    assert PipelineError.user("bad").to_dict() == {"kind": "user_error", "message": "bad"}
    assert PipelineError.application("broken", {"status": 502}).to_dict() == {
        "kind": "application_error",
        "message": "broken",
        "data": {"status": 502},
    }


def test_user_error_response_is_400_with_data():
    response = error_response(PipelineError.user("Query must be a string", {"received_type": "int"}))
    assert response.status_code == 400
    assert response.body == b'{"error":"Query must be a string","data":{"received_type":"int"}}'


def test_application_error_response_hides_details():
    response = error_response(PipelineError.application("ZeroDB search failed", {"error": "secret"}))
    assert response.status_code == 500
    assert b"secret" not in response.body
    assert GENERIC_ERROR_MESSAGE.encode() in response.body


def test_unexpected_exception_is_500():
    response = error_response(RuntimeError("kaboom"), "req-9")
    assert response.status_code == 500
    assert b"kaboom" not in response.body
