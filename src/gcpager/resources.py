from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any, ClassVar, List, Self

from .errors import InvalidResponseError

class CloudResourceBase():
    """
    Intended to be subclassed by a dataclass but isnt actually a dataclass.
    Field names match the API's JSON keys so a raw dict from the client can be
    dropped straight in.  required lists the fields a decoded resource can't
    do without, usually whatever identifies it.
    """
    required: ClassVar[tuple[str, ...]] = ()

    @classmethod
    def from_api(cls, data: Any, **extra) -> Self:
        """
        Build from a raw API dict.  The APIs add fields all the time so
        anything we don't declare is dropped rather than blowing up __init__.
        extra is for things that aren't in the payload, like the owning bucket.
        """
        if not isinstance(data, Mapping):
            raise InvalidResponseError(f"{cls.__name__} expects an object, got {data!r}")
        names = {f.name for f in fields(cls) if f.init}
        kwargs = {k: v for k, v in data.items() if k in names}
        kwargs.update(extra)
        missing = [r for r in cls.required if not kwargs.get(r)]
        if missing:
            raise InvalidResponseError(f"{cls.__name__} missing {', '.join(missing)}: {dict(data)!r}")
        return cls(**kwargs)

    def fixup(self) -> None:
        """
        notify a subclass to do any field adjustments
        """
        pass

    def update_fields(self, **kwargs) -> List[str]:
        """
        Update fields that may be present.
        """
        updated_fields = []
        if is_dataclass(self):
            names = {f.name for f in fields(self)}
            for k,v in kwargs.items():
                if v is not None and k in names:
                    setattr(self, k, v)
                    updated_fields.append(k)
            self.fixup()
        return updated_fields
