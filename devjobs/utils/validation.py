from fastapi import HTTPException, status


def field_error(field: str, message: str, error_type: str = "value_error") -> HTTPException:
    """422 carrying a single field error, shaped like pydantic's validation output"""
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=[{"loc": ["body", field], "msg": message, "type": error_type}]
    )


def redirect(location: str, message: str, next_step: str) -> HTTPException:
    """303 pointing the client at the step it has to complete first"""
    return HTTPException(
        status_code=status.HTTP_303_SEE_OTHER,
        detail=message,
        headers={"Location": location, "X-Next-Step": next_step}
    )


class FieldError(ValueError):
    """Domain validation failure tied to one input field"""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message

    def to_http(self) -> HTTPException:
        return field_error(self.field, self.message)
