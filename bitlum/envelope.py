"""GraphQL request/response envelopes and server error formatting."""

from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from bitlum.errors import ApplicationError, DecodingError

T = TypeVar("T", bound=BaseModel)


class GraphQLRequest(BaseModel):
    """Request envelope posted to the GraphQL endpoint."""

    query: str
    variables: Any = None


class ResponseModel(BaseModel):
    """Base for decoded response shapes.

    Keys are camelCase on the wire. A JSON ``null`` reads the same as
    a missing key, so the field keeps its default.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class ErrorLocation(ResponseModel):
    """Position in the query document an error refers to."""

    line: int = 0
    column: int = 0


class ResponseError(ResponseModel):
    """Single entry of the response ``errors`` list."""

    message: str = ""
    locations: list[ErrorLocation] = Field(default_factory=list)

    def __str__(self) -> str:
        if not self.locations:
            return self.message
        if len(self.locations) == 1:
            loc = self.locations[0]
            return f"{self.message}, location: {loc.line}:{loc.column}"
        positions = ", ".join(f"{loc.line}:{loc.column}" for loc in self.locations)
        return f"{self.message}, locations: {positions}"


class ResponseEnvelope(ResponseModel):
    """Generic part of every response: the error list and raw data."""

    errors: list[ResponseError] | None = None
    data: Any = None


def extract_error(errors: list[ResponseError] | None) -> ApplicationError | None:
    """Collapse a GraphQL error list into a single error.

    Only the first error is rendered; the others are counted.
    """
    if not errors:
        return None

    msg = str(errors[0])
    if len(errors) > 1:
        msg = f"{len(errors)} errors occurred, first one is: {msg}"
    return ApplicationError(msg, errors=list(errors))


def decode_response(body: bytes, model: type[T]) -> tuple[T, ApplicationError | None]:
    """Decode a response body into ``model`` plus any server-side error.

    The envelope is validated first, then ``data`` is validated
    against the operation's model. A missing or null ``data`` decodes
    to the model's defaults.

    Raises:
        DecodingError: If the body is not JSON or has the wrong shape.
    """
    try:
        envelope = ResponseEnvelope.model_validate_json(body)
    except ValidationError as e:
        raise DecodingError(f"invalid response envelope: {e}") from e

    try:
        data = model.model_validate(envelope.data or {})
    except ValidationError as e:
        raise DecodingError(f"invalid response data: {e}") from e

    return data, extract_error(envelope.errors)
