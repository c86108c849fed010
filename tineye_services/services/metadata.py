from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

from tineye_services.client.multipart import MultipartPayload
from tineye_services.exceptions import InvalidArgument, ServiceCallError
from tineye_services.image import Image
from tineye_services.models import ApiResponse
from tineye_services.services.base import (
    ApiProduct,
    ServiceRequest,
    add_image_part,
    add_indexed_text,
    compare_image_payload,
    compare_url_payload,
    service_call,
)


class MetadataRequest(ServiceRequest):
    """Client for APIs that store keyword metadata alongside each image.

    Images may carry a JSON metadata object, sent as `metadata[i]` on add.
    If one image in a batch carries metadata the API expects all of them to;
    that is checked server-side only.
    """

    product = ApiProduct.METADATA

    def add_image(
        self,
        images: Sequence[Image],
        ignore_background: bool = True,
        ignore_interior_background: bool = True,
    ) -> ApiResponse:
        with service_call("add_image", self.log):
            payload = MultipartPayload()
            for i, image in enumerate(images):
                add_image_part(payload, f"images[{i}]", image, "add_image")
                if image.collection_filepath is not None:
                    payload.add_text(f"filepaths[{i}]", image.collection_filepath)
                if image.metadata is not None:
                    payload.add_text(f"metadata[{i}]", image.metadata)
            _add_background_options(payload, ignore_background, ignore_interior_background)
            return self.post_api_request("add", payload)

    def add_url(
        self,
        images: Sequence[Image],
        ignore_background: bool = True,
        ignore_interior_background: bool = True,
    ) -> ApiResponse:
        with service_call("add_url", self.log):
            payload = MultipartPayload()
            for i, image in enumerate(images):
                if not image.url or image.collection_filepath is None:
                    raise ServiceCallError(
                        f"'add_url' image {i} needs both url and collection_filepath",
                        operation="add_url",
                    )
                payload.add_text(f"urls[{i}]", image.url)
                payload.add_text(f"filepaths[{i}]", image.collection_filepath)
                if image.metadata is not None:
                    payload.add_text(f"metadata[{i}]", image.metadata)
            _add_background_options(payload, ignore_background, ignore_interior_background)
            return self.post_api_request("add", payload)

    def get_metadata(self, filepaths: Sequence[str]) -> ApiResponse:
        """Stored keyword metadata for the given collection filepaths."""

        with service_call("get_metadata", self.log):
            payload = add_indexed_text(MultipartPayload(), "filepaths", list(filepaths))
            return self.post_api_request("get_metadata", payload)

    def get_search_metadata(self) -> ApiResponse:
        """Tree of keywords that can be searched on."""

        with service_call("get_search_metadata", self.log):
            return self.get_api_request("get_search_metadata")

    def get_return_metadata(self) -> ApiResponse:
        """Keywords that can be returned with search results."""

        with service_call("get_return_metadata", self.log):
            return self.get_api_request("get_return_metadata")

    def update_metadata(
        self, filepaths: Sequence[str], metadata: Sequence[Dict[str, Any]]
    ) -> ApiResponse:
        """Replace the metadata of images already in the collection.

        Raises:
          InvalidArgument: if filepaths and metadata differ in length
        """

        with service_call("update_metadata", self.log):
            filepaths = list(filepaths)
            metadata = list(metadata)
            if len(filepaths) != len(metadata):
                raise InvalidArgument(
                    "filepaths and metadata must have the same number of entries "
                    f"({len(filepaths)} != {len(metadata)})"
                )
            payload = MultipartPayload()
            for i, (filepath, entry) in enumerate(zip(filepaths, metadata)):
                payload.add_text(f"filepaths[{i}]", filepath)
                payload.add_text(f"metadata[{i}]", entry)
            return self.post_api_request("update_metadata", payload)

    def add_extra_search_options(
        self,
        payload: MultipartPayload,
        metadata: Optional[Dict[str, Any]] = None,
        return_metadata: Optional[List[str]] = None,
        sort_metadata: bool = False,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
    ) -> MultipartPayload:
        """Append search options to `payload`.

        The metadata fields are only sent when a metadata filter is given.
        """

        if metadata is not None:
            payload.add_text("metadata", metadata)
            payload.add_text("return_metadata", list(return_metadata or []))
            payload.add_text("sort_metadata", bool(sort_metadata))
        payload.add_text("min_score", int(min_score))
        payload.add_text("offset", int(offset))
        payload.add_text("limit", int(limit))
        return payload

    def search_image(
        self,
        image: Image,
        metadata: Optional[Dict[str, Any]] = None,
        return_metadata: Optional[List[str]] = None,
        sort_metadata: bool = False,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
    ) -> ApiResponse:
        with service_call("search_image", self.log):
            payload = add_image_part(MultipartPayload(), "image", image, "search_image")
            self.add_extra_search_options(
                payload, metadata, return_metadata, sort_metadata, min_score, offset, limit
            )
            return self.post_api_request("search", payload)

    def search_filepath(
        self,
        filepath: str,
        metadata: Optional[Dict[str, Any]] = None,
        return_metadata: Optional[List[str]] = None,
        sort_metadata: bool = False,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
    ) -> ApiResponse:
        with service_call("search_filepath", self.log):
            payload = MultipartPayload().add_text("filepath", filepath)
            self.add_extra_search_options(
                payload, metadata, return_metadata, sort_metadata, min_score, offset, limit
            )
            return self.post_api_request("search", payload)

    def search_url(
        self,
        url: str,
        metadata: Optional[Dict[str, Any]] = None,
        return_metadata: Optional[List[str]] = None,
        sort_metadata: bool = False,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
    ) -> ApiResponse:
        with service_call("search_url", self.log):
            payload = MultipartPayload().add_text("url", url)
            self.add_extra_search_options(
                payload, metadata, return_metadata, sort_metadata, min_score, offset, limit
            )
            return self.post_api_request("search", payload)

    def compare_image(
        self,
        image1: Image,
        image2: Image,
        min_score: int = 0,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        with service_call("compare_image", self.log):
            payload = compare_image_payload(
                image1, image2, min_score, check_horizontal_flip, "compare_image"
            )
            return self.post_api_request("compare", payload)

    def compare_url(
        self,
        url1: str,
        url2: str,
        min_score: int = 0,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        with service_call("compare_url", self.log):
            payload = compare_url_payload(url1, url2, min_score, check_horizontal_flip)
            return self.post_api_request("compare", payload)


def _add_background_options(
    payload: MultipartPayload, ignore_background: bool, ignore_interior_background: bool
) -> None:
    payload.add_text("ignore_background", bool(ignore_background))
    payload.add_text("ignore_interior_background", bool(ignore_interior_background))
