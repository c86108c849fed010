from __future__ import annotations

import json
import mimetypes
import uuid
from dataclasses import dataclass
from typing import Any, Iterator, List, Mapping, Optional, Tuple, Union

from tineye_services.exceptions import InvalidArgument


@dataclass(frozen=True, slots=True)
class FormPart:
    """One named part of a multipart/form-data body.

    Text parts hold a `str`; file parts hold `bytes` plus a filename.
    """

    name: str
    value: Union[str, bytes]
    filename: Optional[str] = None
    content_type: Optional[str] = None

    @property
    def is_file(self) -> bool:
        return isinstance(self.value, bytes)


def form_value(value: Any) -> str:
    """Encode a scalar option the way the services expect it on the wire.

    Booleans become "true"/"false", numbers their decimal form, and mappings
    or lists compact JSON. None is never a valid value.
    """

    if value is None:
        raise InvalidArgument("form values must be set")
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Mapping):
        return json.dumps(dict(value), separators=(",", ":"))
    if isinstance(value, (list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class MultipartPayload:
    """Ordered collection of form parts, built once per request.

    Part order is preserved exactly as added, which keeps positional fields
    such as `filepaths[0]`, `filepaths[1]` in caller order on the wire.
    """

    def __init__(self) -> None:
        self._parts: List[FormPart] = []

    def add_text(self, name: str, value: Any) -> "MultipartPayload":
        if value is None:
            raise InvalidArgument(f"form field {name!r} must be set")
        self._parts.append(FormPart(name=name, value=form_value(value)))
        return self

    def add_file(
        self,
        name: str,
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> "MultipartPayload":
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError(f"file part {name!r} requires bytes")
        fname = filename or name
        ct = content_type or mimetypes.guess_type(fname)[0] or "application/octet-stream"
        self._parts.append(FormPart(name=name, value=bytes(data), filename=fname, content_type=ct))
        return self

    @property
    def parts(self) -> Tuple[FormPart, ...]:
        return tuple(self._parts)

    def names(self) -> List[str]:
        return [p.name for p in self._parts]

    def get(self, name: str) -> Optional[Union[str, bytes]]:
        """Return the value of the first part called `name`, or None."""

        for p in self._parts:
            if p.name == name:
                return p.value
        return None

    def text_fields(self) -> List[Tuple[str, str]]:
        """(name, value) pairs of the text parts, in order."""

        return [(p.name, p.value) for p in self._parts if not p.is_file]

    def __len__(self) -> int:
        return len(self._parts)

    def __iter__(self) -> Iterator[FormPart]:
        return iter(self._parts)

    def encode(self, boundary: Optional[str] = None) -> Tuple[bytes, str]:
        """Encode as multipart/form-data.

        Returns (body, content_type header value). The whole body is built in
        memory.
        """

        boundary = boundary or "----tineye-" + uuid.uuid4().hex
        crlf = "\r\n"
        chunks: List[bytes] = []

        for part in self._parts:
            chunks.append(f"--{boundary}{crlf}".encode("utf-8"))
            if part.is_file:
                filename = (part.filename or part.name).replace('"', "%22")
                chunks.append(
                    f'Content-Disposition: form-data; name="{part.name}"; filename="{filename}"{crlf}'.encode(
                        "utf-8"
                    )
                )
                chunks.append(f"Content-Type: {part.content_type}{crlf}{crlf}".encode("utf-8"))
                chunks.append(part.value)  # type: ignore[arg-type]
            else:
                chunks.append(
                    f'Content-Disposition: form-data; name="{part.name}"{crlf}{crlf}'.encode("utf-8")
                )
                chunks.append(str(part.value).encode("utf-8"))
            chunks.append(crlf.encode("utf-8"))

        chunks.append(f"--{boundary}--{crlf}".encode("utf-8"))
        return b"".join(chunks), f"multipart/form-data; boundary={boundary}"
