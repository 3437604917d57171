"""Host facing adaptor: options map in, progress events and a node style callback out.

A host runtime (a mobile bridge, a desktop shell, a job runner) calls
``FileTransferModule.upload(options, callback)`` with a loosely typed options
map::

    {
        "fileKey": "photo",                  # form name of the file part
        "uri": "file:///data/photo.jpg",     # resolved to a local path
        "uploadUrl": "https://example.com/upload",
        "mimeType": "image/jpeg",
        "fileName": "photo.jpg",
        "headers": {"Authorization": "Bearer ..."},
        "data": {"caption": "hello", "rating": 5},
    }

Progress goes to ``emitter("upload_progress", {"progress": 0.42})`` and the
callback receives ``(error, None)`` or ``(None, response_text)`` exactly once.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Mapping, Optional

from rsxml import Logger

from filetransfer.UploadClient import DEFAULT_MIME_TYPE, UploadClient, UploadRequest, UploadResult
from filetransfer.lib.file_utils import resolve_uri
from filetransfer.lib.progress import ProgressEvent

UPLOAD_PROGRESS_EVENT = "upload_progress"

Emitter = Callable[[str, dict], None]
CompleteCallback = Callable[[Any, Optional[str]], None]


class FileTransferModule:
    """Bridges host option maps onto an UploadClient."""
    name = "FileTransfer"

    def __init__(self, client: UploadClient = None, emitter: Emitter = None, uri_resolver: Callable[[str], str] = resolve_uri):
        self.log = Logger('File Transfer')
        self.client = client or UploadClient()
        self.emitter = emitter
        self.uri_resolver = uri_resolver

    def build_request(self, options: Mapping[str, Any]) -> UploadRequest:
        """ Turn a host options map into an UploadRequest.

        Args:
            options (Mapping[str, Any]): see the module docstring

        Raises:
            ValueError: if ``uri`` or ``uploadUrl`` is missing

        Returns:
            UploadRequest: the request
        """
        uri = options.get("uri")
        url = options.get("uploadUrl")
        if not uri:
            raise ValueError("Missing required option: uri")
        if not url:
            raise ValueError("Missing required option: uploadUrl")

        return UploadRequest(
            file_field_name=options.get("fileKey") or "file",
            file_path=self.uri_resolver(uri),
            destination_url=url,
            mime_type=options.get("mimeType") or DEFAULT_MIME_TYPE,
            file_name=options.get("fileName"),
            headers=options.get("headers") or {},
            fields=options.get("data") or {},
        )

    def upload(self, options: Mapping[str, Any], complete_callback: CompleteCallback) -> Future:
        """ Upload a file described by a host options map.

        Args:
            options (Mapping[str, Any]): see the module docstring
            complete_callback (CompleteCallback): called once with ``(error, body)``

        Returns:
            Future: resolves to the UploadResult
        """
        try:
            request = self.build_request(options)
        except (ValueError, TypeError) as exc:
            self.log.error(f"Invalid upload options: {exc}")
            complete_callback(str(exc), None)
            future = Future()
            future.set_result(None)
            return future

        def _on_complete(result: UploadResult):
            complete_callback(*result.as_callback_args())

        return self.client.upload(request, on_progress=self._send_progress_event, on_complete=_on_complete)

    def _send_progress_event(self, event: ProgressEvent):
        if self.emitter is None:
            return
        self.emitter(UPLOAD_PROGRESS_EVENT, event.as_payload())
