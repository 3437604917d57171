"""Upload a single file as multipart/form-data from the command line."""

from __future__ import annotations

import argparse
import logging
import mimetypes
import os
import sys
import traceback
from dataclasses import replace
from typing import Dict, List

import inquirer
from rsxml import Logger, ProgressBar, dotenv
from termcolor import colored

from filetransfer.UploadClient import DEFAULT_MIME_TYPE, UploadClient, UploadRequest
from filetransfer.lib.progress import ProgressEvent
from filetransfer.settings import UploadSettings


def parse_pairs(pairs: List[str], option: str) -> List[tuple]:
    """Split ``key=value`` arguments. Keys may repeat."""
    parsed = []
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"{option} expects key=value, got: {pair}")
        parsed.append((key.strip(), value))
    return parsed


def upload_file(
    file_path: str,
    url: str,
    file_key: str = "file",
    file_name: str = None,
    mime_type: str = None,
    fields: Dict[str, str] = None,
    headers: List[tuple] = None,
    settings: UploadSettings = None,
) -> str:
    """ Upload one file and return the server response.

    Args:
        file_path (str): Local file to upload.
        url (str): Destination URL.
        file_key (str, optional): Form name of the file part. Defaults to "file".
        file_name (str, optional): Name reported to the server. Defaults to the file's base name.
        mime_type (str, optional): Content type of the file part. Guessed from the name when missing.
        fields (Dict[str, str], optional): Extra form fields.
        headers (List[tuple], optional): Extra request headers.
        settings (UploadSettings, optional): Client settings.

    Raises:
        UploadError: If the upload fails.

    Returns:
        str: The response body.
    """
    log = Logger("Upload File")
    log.title("Upload File")

    if not mime_type:
        mime_type = mimetypes.guess_type(file_name or file_path)[0] or DEFAULT_MIME_TYPE

    request = UploadRequest(
        file_field_name=file_key,
        file_path=file_path,
        destination_url=url,
        mime_type=mime_type,
        file_name=file_name,
        headers=tuple(headers or ()),
        fields=fields or {},
    )

    prg = None
    file_size = 0
    if os.path.isfile(file_path):
        file_size = os.path.getsize(file_path)
        prg = ProgressBar(file_size, 50, 'Upload Progress', byte_format=True)

    def _on_progress(event: ProgressEvent):
        # The bar tracks file bytes; the body also carries part headers
        if prg is not None and event.total_bytes > 0:
            prg.update(min(event.bytes_written, file_size))

    with UploadClient(settings=settings) as client:
        result = client.upload_sync(request, on_progress=_on_progress)

    if prg is not None:
        prg.finish()

    if not result.ok:
        raise result.error
    return result.body


def main() -> None:
    """CLI entry point for uploading a file."""

    parser = argparse.ArgumentParser()
    parser.add_argument("file_path", help="File to upload.", type=str)
    parser.add_argument("--url", help="Upload URL (falls back to UPLOAD_URL in environment).", type=str)
    parser.add_argument("--file-key", help="Form field name for the file.", type=str, default="file")
    parser.add_argument("--file-name", help="File name sent to the server. Defaults to the local name.", type=str, default=None)
    parser.add_argument("--mime-type", help="Content type of the file. Guessed when not supplied.", type=str, default=None)
    parser.add_argument("--field", help="Extra form field as key=value. Repeatable.", action="append", default=[])
    parser.add_argument("--header", help="Extra request header as key=value. Repeatable.", action="append", default=[])
    parser.add_argument("--timeout", help="Request timeout in seconds (falls back to UPLOAD_TIMEOUT in environment).", type=float)
    parser.add_argument("--log", help="Path to write a log file to.", type=str, default=None)

    args = dotenv.parse_args_env(parser)

    url = args.url if args.url else os.getenv("UPLOAD_URL")
    if not url:
        answers = inquirer.prompt([
            inquirer.Text('url', message="Upload URL"),
        ])
        url = answers.get('url') if answers else None
    if not url:
        print("No upload URL supplied or found in environment as UPLOAD_URL")
        sys.exit(1)

    if not os.path.isfile(args.file_path):
        print(f"File does not exist: {args.file_path}")
        sys.exit(1)

    log = Logger("Upload Setup")
    if args.log:
        log.setup(log_path=args.log, log_level=logging.DEBUG)
    else:
        log.setup(log_level=logging.DEBUG)

    try:
        settings = UploadSettings.from_env()
        if args.timeout:
            settings = replace(settings, timeout=args.timeout)
        body = upload_file(
            args.file_path,
            url,
            file_key=args.file_key,
            file_name=args.file_name,
            mime_type=args.mime_type,
            fields=dict(parse_pairs(args.field, "--field")),
            headers=parse_pairs(args.header, "--header"),
            settings=settings,
        )
        print(colored(body, 'green'))
        sys.exit(0)
    except Exception as exc:  # pragma: no cover - CLI safety net
        log.error(exc)
        traceback.print_exc(file=sys.stdout)
        sys.exit(1)


if __name__ == "__main__":
    main()
