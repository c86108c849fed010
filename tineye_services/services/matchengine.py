from __future__ import annotations

from typing import Sequence

from tineye_services.client.multipart import MultipartPayload
from tineye_services.exceptions import ServiceCallError
from tineye_services.image import Image
from tineye_services.models import ApiResponse
from tineye_services.services.base import (
    ApiProduct,
    ServiceRequest,
    add_image_part,
    add_search_options,
    compare_image_payload,
    compare_url_payload,
    service_call,
)


class MatchEngineRequest(ServiceRequest):
    """Client for the MatchEngine API.

    Adds collection management (add by upload or URL) and matching
    (search, compare) on top of the shared operations.
    """

    product = ApiProduct.MATCHENGINE

    def add_image(self, images: Sequence[Image]) -> ApiResponse:
        """Upload images to the collection.

        Each image is sent as `images[i]`; its collection filepath, when set,
        as `filepaths[i]`.
        """

        with service_call("add_image", self.log):
            payload = MultipartPayload()
            for i, image in enumerate(images):
                add_image_part(payload, f"images[{i}]", image, "add_image")
                if image.collection_filepath is not None:
                    payload.add_text(f"filepaths[{i}]", image.collection_filepath)
            return self.post_api_request("add", payload)

    def add_url(self, images: Sequence[Image]) -> ApiResponse:
        """Add images the API server downloads itself.

        Every image needs both a URL and a collection filepath.
        """

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
            return self.post_api_request("add", payload)

    def search_image(
        self,
        image: Image,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        """Search the collection with uploaded image bytes."""

        with service_call("search_image", self.log):
            payload = add_image_part(MultipartPayload(), "image", image, "search_image")
            add_search_options(payload, min_score, offset, limit, check_horizontal_flip)
            return self.post_api_request("search", payload)

    def search_filepath(
        self,
        filepath: str,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        """Search with an image already in the collection."""

        with service_call("search_filepath", self.log):
            payload = MultipartPayload().add_text("filepath", filepath)
            add_search_options(payload, min_score, offset, limit, check_horizontal_flip)
            return self.post_api_request("search", payload)

    def search_url(
        self,
        url: str,
        min_score: int = 0,
        offset: int = 0,
        limit: int = 10,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        with service_call("search_url", self.log):
            payload = MultipartPayload().add_text("url", url)
            add_search_options(payload, min_score, offset, limit, check_horizontal_flip)
            return self.post_api_request("search", payload)

    def compare_image(
        self,
        image1: Image,
        image2: Image,
        min_score: int = 0,
        check_horizontal_flip: bool = False,
    ) -> ApiResponse:
        """Compare two uploaded images. The result holds one match score and percentages."""

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


class MobileEngineRequest(MatchEngineRequest):
    """Client for the MobileEngine API. Same wire behavior as MatchEngine."""

    product = ApiProduct.MOBILEENGINE


class WineEngineRequest(MatchEngineRequest):
    """Client for the WineEngine API. Same wire behavior as MatchEngine."""

    product = ApiProduct.WINEENGINE
