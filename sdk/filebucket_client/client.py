"""
Python client for the filebucket API: buckets, listing, signed upload/download, bulk delete.
Uploads go through one-time signed URLs and are retried with exponential backoff on transport errors.
"""
import mimetypes
import time
from pathlib import Path

import httpx


class FileBucketClient:
    """Client authenticated with a client_id / client_secret pair (HTTP Basic)."""

    def __init__(
        self,
        base_url: str,
        client_id: str,
        client_secret: str,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._auth = (client_id, client_secret)
        self._transport = transport
        self._session: httpx.Client | None = None

    def _get_session(self) -> httpx.Client:
        if self._session is None:
            self._session = httpx.Client(
                base_url=self.base_url,
                timeout=60.0,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._session

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        r = self._get_session().request(method, path, auth=self._auth, **kwargs)
        r.raise_for_status()
        return r

    def create_bucket(
        self,
        name: str,
        public_paths: list[str] | None = None,
        cors_policy: list[dict] | None = None,
    ) -> dict:
        body: dict = {"name": name}
        if public_paths is not None:
            body["public_paths"] = public_paths
        if cors_policy is not None:
            body["cors_policy"] = cors_policy
        return self._request("POST", "/buckets", json=body).json()

    def list_buckets(self) -> list[dict]:
        return self._request("GET", "/buckets").json()

    def list_files(self, bucket_id: int, path: str = "") -> dict:
        """One level under path. Returns { bucket_id, path, files, folders }."""
        return self._request("GET", f"/buckets/{bucket_id}/files", params={"path": path}).json()

    def upload_file(
        self,
        bucket_id: int,
        key: str,
        local_path: str | Path,
        owner_entity_type: str = "sdk",
        owner_entity_id: str = "filebucket-client",
        mimetype: str | None = None,
    ) -> dict:
        """Register key, then send the file to the signed URL. Returns the upload response."""
        path = Path(local_path)
        if not path.is_file():
            raise FileNotFoundError(path)
        body = path.read_bytes()
        mimetype = mimetype or mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        issued = self._request(
            "POST",
            "/files/signed-url",
            json={
                "bucket_id": bucket_id,
                "key": key,
                "file_name": path.name,
                "file_size": len(body),
                "mimetype": mimetype,
                "owner_entity_type": owner_entity_type,
                "owner_entity_id": owner_entity_id,
            },
        ).json()
        return self._put_with_retry(issued["signed_url"], body, mimetype)

    def _put_with_retry(self, upload_url: str, body: bytes, content_type: str, max_retries: int = 5) -> dict:
        # Only transport failures are retried: a 4xx means the token was refused or already consumed
        for attempt in range(max_retries):
            try:
                r = self._get_session().put(upload_url, content=body, headers={"Content-Type": content_type})
            except httpx.TransportError:
                if attempt == max_retries - 1:
                    raise
                backoff = (2**attempt) + (time.time() % 1)  # exponential backoff + jitter
                time.sleep(backoff)
                continue
            r.raise_for_status()
            return r.json()
        raise RuntimeError("unreachable")

    def download_file(self, file_id: str, dest: str | Path) -> Path:
        """Fetch a one-time download URL and write the content to dest (a file or a directory)."""
        issued = self._request("POST", "/files/download-url", json={"file_id": file_id}).json()
        dest = Path(dest)
        with self._get_session().stream("GET", issued["signed_url"]) as r:
            r.raise_for_status()
            if dest.is_dir():
                dest = dest / _filename_from(r.headers.get("content-disposition"), file_id)
            with dest.open("wb") as out:
                for chunk in r.iter_bytes():
                    out.write(chunk)
        return dest

    def delete_files(
        self,
        file_ids: list[str] | None = None,
        bucket_id: int | None = None,
        path: str | None = None,
    ) -> dict:
        """Delete by ids or by (bucket_id, path). Returns { deleted, missing, failed }."""
        body: dict = {}
        if file_ids:
            body["file_ids"] = file_ids
        if bucket_id is not None:
            body["bucket_id"] = bucket_id
        if path is not None:
            body["path"] = path
        return self._request("DELETE", "/files", json=body).json()

    def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self) -> "FileBucketClient":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def _filename_from(content_disposition: str | None, fallback: str) -> str:
    if content_disposition and 'filename="' in content_disposition:
        name = content_disposition.split('filename="', 1)[1].split('"', 1)[0]
        return Path(name).name or fallback
    return fallback
