from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from tineye_services.exceptions import InvalidArgument


@dataclass(frozen=True)
class Image:
    """
    One image reference used by the TinEye Services APIs.

    An image carries either local bytes (for upload operations) or a URL (for
    operations where the API server fetches the image itself), plus an optional
    collection filepath and optional JSON metadata.

    Invariants
    - Immutable after construction
    - metadata is a read-only copy: neither the caller nor holders of the
      image can mutate it
    - Unset fields are None
    """

    data: Optional[bytes] = None
    url: Optional[str] = None
    collection_filepath: Optional[str] = None
    metadata: Optional[Mapping[str, Any]] = field(default=None, hash=False)
    filepath: Optional[str] = None

    def __post_init__(self) -> None:
        if self.metadata is not None and not isinstance(self.metadata, MappingProxyType):
            object.__setattr__(self, "metadata", _read_only(self.metadata))

    @classmethod
    def from_file(
        cls,
        filepath: str,
        collection_filepath: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Image":
        """Read the image at `filepath` into memory.

        Raises:
          InvalidArgument: if filepath is empty or None
          OSError: if the file cannot be read
        """

        if not filepath:
            raise InvalidArgument("image filepath must be set")
        data = Path(filepath).read_bytes()
        return cls(
            data=data,
            collection_filepath=collection_filepath,
            metadata=_read_only(metadata),
            filepath=str(filepath),
        )

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        filename: Optional[str] = None,
        collection_filepath: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Image":
        """Wrap image bytes already held in memory."""

        if data is None:
            raise InvalidArgument("image data must be set")
        return cls(
            data=bytes(data),
            collection_filepath=collection_filepath,
            metadata=_read_only(metadata),
            filepath=filename,
        )

    @classmethod
    def from_url(
        cls,
        url: str,
        collection_filepath: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> "Image":
        """Reference an image by URL. The URL is stored verbatim and never fetched."""

        if not url:
            raise InvalidArgument("image url must be set")
        return cls(
            url=str(url),
            collection_filepath=collection_filepath,
            metadata=_read_only(metadata),
        )

    @property
    def filename(self) -> Optional[str]:
        if not self.filepath:
            return None
        return os.path.basename(self.filepath)


def _read_only(metadata: Optional[Mapping[str, Any]]) -> Optional[Mapping[str, Any]]:
    if metadata is None:
        return None
    return MappingProxyType(deepcopy(dict(metadata)))
