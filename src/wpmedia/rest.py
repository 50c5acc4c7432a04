"""
WordPress REST API media store.

Lists and deletes attachments through `/wp-json/wp/v2/media` using an
application password. File presence is checked against a local mirror of
the site's uploads directory.
"""

from pathlib import Path
from typing import Dict, List, Optional, Union
from urllib.parse import unquote, urlsplit

import requests

from wpmedia.store import ContentStore, PathResolutionError, StoreError, resolve_upload_path

PER_PAGE = 100
# Every status an attachment can have, like WP_Query post_status=any plus trash.
LIST_STATUSES = "inherit,private,trash"
ITEM_FIELDS = "id,source_url,media_details"
UPLOADS_MARKER = "/wp-content/uploads/"


class RestMediaStore(ContentStore):
    """
    WordPress REST API client for attachment records.

    Attributes:
        base_url: Site URL (without /wp-json)
        uploads_dir: Local uploads directory matching the site's uploads
        session: Requests session carrying basic auth
    """

    def __init__(self, base_url: str, username: str, app_password: str,
                 uploads_dir: Union[str, Path], timeout: float = 30.0,
                 session: Optional[requests.Session] = None, uploads_url: Optional[str] = None):
        """
        Initialize the REST store.

        Args:
            base_url: WordPress site URL (e.g. https://example.com)
            username: WordPress user with delete_posts capability
            app_password: Application password for that user
            uploads_dir: Local path of wp-content/uploads
            timeout: Per-request timeout in seconds
            session: Optional pre-built session (tests)
            uploads_url: Public URL of the uploads directory
                (default: <base_url>/wp-content/uploads/)
        """
        self.base_url = base_url.rstrip('/')
        self.api_url = f"{self.base_url}/wp-json/wp/v2/media"
        self.uploads_dir = Path(uploads_dir)
        self.uploads_url = (uploads_url or f"{self.base_url}/wp-content/uploads").rstrip("/") + "/"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (username, app_password)
        self._file_cache: Dict[int, str] = {}

    def close(self) -> None:
        self.session.close()

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            raise StoreError(f"{method} {url} failed with HTTP {status}") from e
        except requests.RequestException as e:
            raise StoreError(f"{method} {url} failed: {e}") from e
        return response

    def relative_upload_path(self, item: dict) -> Optional[str]:
        """
        Path of an attachment relative to the uploads directory.

        Images carry it in media_details.file. PDFs, audio and video do not,
        so it is taken from source_url below the uploads base URL.
        """
        details = item.get("media_details")
        if isinstance(details, dict) and details.get("file"):
            return details["file"]

        source_url = item.get("source_url") or ""
        if source_url.startswith(self.uploads_url):
            relative = source_url[len(self.uploads_url):]
        elif UPLOADS_MARKER in source_url:
            relative = source_url.split(UPLOADS_MARKER, 1)[1]
        else:
            return None
        relative = unquote(urlsplit(relative).path).lstrip("/")
        return relative or None

    def list_attachment_ids(self) -> List[int]:
        ids = []
        page = 1
        total_pages = 1
        while page <= total_pages:
            response = self._request("GET", self.api_url, params={
                "page": page,
                "per_page": PER_PAGE,
                "context": "edit",
                "status": LIST_STATUSES,
                "orderby": "id",
                "order": "asc",
                "_fields": ITEM_FIELDS,
            })
            total_pages = int(response.headers.get("X-WP-TotalPages", page))
            for item in response.json():
                attachment_id = int(item["id"])
                ids.append(attachment_id)
                relative = self.relative_upload_path(item)
                if relative:
                    self._file_cache[attachment_id] = relative
            page += 1
        return ids

    def get_attached_file(self, attachment_id: int) -> Optional[str]:
        relative = self._file_cache.get(attachment_id)
        if relative is None:
            url = f"{self.api_url}/{attachment_id}"
            try:
                response = self._request("GET", url, params={"context": "edit", "_fields": ITEM_FIELDS})
            except StoreError as e:
                cause = e.__cause__
                if isinstance(cause, requests.HTTPError) and cause.response is not None \
                        and cause.response.status_code == 404:
                    raise PathResolutionError(attachment_id, "not found via REST API") from e
                raise
            relative = self.relative_upload_path(response.json())
            if not relative:
                return None
            self._file_cache[attachment_id] = relative
        return resolve_upload_path(relative, self.uploads_dir)

    def delete_attachment(self, attachment_id: int) -> None:
        self._request("DELETE", f"{self.api_url}/{attachment_id}", params={"force": "true"})
        self._file_cache.pop(attachment_id, None)
