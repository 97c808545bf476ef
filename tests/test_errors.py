from app.core.errors import (
    DuplicateError, ErrorCode, NotFoundError, ValidationFailedError, error_body,
    flatten_validation_errors,
)


def test_error_body_omits_empty_details():
    assert error_body(ErrorCode.NOT_FOUND, "Clip not found") == {
        "success": False,
        "error": {"code": "NOT_FOUND", "message": "Clip not found"},
    }


def test_error_body_keeps_details():
    body = error_body(ErrorCode.NOT_FOUND, "Clip not found", {"slug": "x"})
    assert body["error"]["details"] == {"slug": "x"}


def test_error_classes_carry_status_and_code():
    assert NotFoundError("Animator").message == "Animator not found"
    assert NotFoundError().status_code == 404
    assert DuplicateError("Clip in collection").status_code == 409
    assert ValidationFailedError().code is ErrorCode.VALIDATION_ERROR


def test_validation_errors_are_grouped_by_field():
    errors = [
        {"loc": ("query", "limit"), "msg": "Input should be less than or equal to 50"},
        {"loc": ("body", "attributions", 0, "role"), "msg": "Field required"},
        {"loc": ("body",), "msg": "Invalid JSON"},
    ]

    flattened = flatten_validation_errors(errors)

    assert flattened["fieldErrors"] == {
        "limit": ["Input should be less than or equal to 50"],
        "attributions.0.role": ["Field required"],
    }
    assert flattened["formErrors"] == ["Invalid JSON"]


def test_json_decode_offsets_are_form_errors():
    flattened = flatten_validation_errors(
        [{"loc": ("body", 1), "msg": "JSON decode error"}]
    )

    assert flattened == {"formErrors": ["JSON decode error"], "fieldErrors": {}}
