"""
Triggers and codecs — how a command is reached and how it is (de)serialized.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Literal, Protocol

from kungfu import Result

from storefront.ops import Op

type Method = Literal["GET", "POST", "PUT", "DELETE", "PATCH"]


@dataclass(frozen=True, slots=True)
class HTTPRouteTrigger:
    method: Method
    path: str


class ToDomain[DomainT](Protocol):
    def to_domain(self) -> DomainT: ...


class FromDomain[DomainT](Protocol):
    @classmethod
    def from_domain(cls, dom: DomainT) -> "FromDomain[DomainT]": ...


@dataclass(frozen=True, slots=True)
class RequestResponseCodec:
    """
    ``request.to_domain()`` builds the command; ``response.from_domain(result)``
    renders its Result (or raises the error for the HTTP layer to map).
    """

    request: type[ToDomain[Any]]
    response: type[FromDomain[Result[Any, Any]]]

    if TYPE_CHECKING:

        def __init__[T, E](
            self,
            request: type[ToDomain[Op[T, E]]],
            response: type[FromDomain[Result[T, E]]],
        ) -> None: ...


type Trigger = HTTPRouteTrigger
type Codec = RequestResponseCodec
type Exposure = tuple[Trigger, Codec]


__all__ = (
    "Method",
    "HTTPRouteTrigger",
    "ToDomain",
    "FromDomain",
    "RequestResponseCodec",
    "Trigger",
    "Codec",
    "Exposure",
)
