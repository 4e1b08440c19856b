"""
Upload a local EPUB to a running bookdrop server under the key shown on the e-reader.

Example:
    bookdrop-send --server http://127.0.0.1:3001 --key a1b2 --kepubify Book.epub
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

import httpx

EPUB_CONTENT_TYPE = "application/epub+zip"


def send_book(
    server: str,
    key: str,
    book: Path,
    kepubify: bool = False,
    client: Optional[httpx.Client] = None,
    timeout: float = 600,
) -> dict[str, Any]:
    url = server.rstrip("/") + "/upload"
    data = {"key": key.strip().lower()}
    if kepubify:
        data["kepubify"] = "on"

    print(f"[api] uploading {book.name} to {url}")
    http = client or httpx.Client(timeout=timeout)
    try:
        with book.open("rb") as fp:
            response = http.post(url, data=data, files={"file": (book.name, fp, EPUB_CONTENT_TYPE)})
    except httpx.HTTPError as exc:
        raise SystemExit(f"upload failed: {exc}") from exc
    finally:
        if client is None:
            http.close()

    if response.status_code != 200:
        raise SystemExit(f"upload failed: {response.status_code} {response.text}")
    return response.json()


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Send an EPUB to an e-reader through bookdrop")
    parser.add_argument("book", type=Path, help="EPUB file to send")
    parser.add_argument("--key", required=True, help="Key displayed on the e-reader")
    parser.add_argument("--server", default="http://127.0.0.1:3001", help="Bookdrop server base URL")
    parser.add_argument("--kepubify", action="store_true", help="Ask the server to convert to KEPUB")
    args = parser.parse_args(argv)

    if not args.book.is_file():
        raise SystemExit(f"file not found: {args.book}")

    upload_resp = send_book(args.server, args.key, args.book, args.kepubify)

    print("[done] upload succeeded")
    print(json.dumps(upload_resp, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        sys.exit("aborted by user")
