"""CLI: filebucket upload | download | ls | rm."""
import argparse
import json
import os
import sys
from pathlib import Path

import httpx

from .client import FileBucketClient


def main() -> int:
    parser = argparse.ArgumentParser(prog="filebucket", description="Buckets and signed URLs on a filebucket server")
    parser.add_argument("--base-url", default=os.environ.get("FILEBUCKET_URL", "http://localhost:8000"), help="API base URL")
    parser.add_argument("--client-id", default=os.environ.get("FILEBUCKET_CLIENT_ID"), help="Client id (or FILEBUCKET_CLIENT_ID)")
    parser.add_argument("--client-secret", default=os.environ.get("FILEBUCKET_CLIENT_SECRET"), help="Client secret (or FILEBUCKET_CLIENT_SECRET)")
    sub = parser.add_subparsers(dest="command", required=True)

    # upload
    p_upload = sub.add_parser("upload", help="Upload a local file to a key")
    p_upload.add_argument("--bucket-id", type=int, required=True, help="Target bucket id")
    p_upload.add_argument("--key", default=None, help="Object key (default: the file name)")
    p_upload.add_argument("--mimetype", default=None, help="Content type (default: guessed)")
    p_upload.add_argument("file", help="Local file path")
    p_upload.set_defaults(func=cmd_upload)

    # download
    p_download = sub.add_parser("download", help="Download a file by id")
    p_download.add_argument("file_id", help="File id")
    p_download.add_argument("--out", default=".", help="Destination file or directory")
    p_download.set_defaults(func=cmd_download)

    # ls
    p_ls = sub.add_parser("ls", help="List one level of a bucket")
    p_ls.add_argument("--bucket-id", type=int, required=True, help="Bucket id")
    p_ls.add_argument("path", nargs="?", default="", help="Folder path (default: root)")
    p_ls.set_defaults(func=cmd_ls)

    # rm
    p_rm = sub.add_parser("rm", help="Delete files by id, or everything under --path")
    p_rm.add_argument("file_ids", nargs="*", help="File ids")
    p_rm.add_argument("--bucket-id", type=int, default=None, help="Bucket id (with --path)")
    p_rm.add_argument("--path", default=None, help="Delete recursively under this path")
    p_rm.set_defaults(func=cmd_rm)

    args = parser.parse_args()
    if not args.client_id or not args.client_secret:
        print("Error: client id and secret are required", file=sys.stderr)
        return 2
    client = FileBucketClient(base_url=args.base_url, client_id=args.client_id, client_secret=args.client_secret)
    try:
        return args.func(client, args)
    except (httpx.HTTPError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()


def cmd_upload(client: FileBucketClient, args: argparse.Namespace) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Missing file: {path}", file=sys.stderr)
        return 1
    out = client.upload_file(args.bucket_id, args.key or path.name, path, mimetype=args.mimetype)
    print(json.dumps(out, indent=2))
    return 0


def cmd_download(client: FileBucketClient, args: argparse.Namespace) -> int:
    dest = client.download_file(args.file_id, args.out)
    print(f"Saved {dest}", file=sys.stderr)
    return 0


def cmd_ls(client: FileBucketClient, args: argparse.Namespace) -> int:
    listing = client.list_files(args.bucket_id, args.path)
    for folder in listing["folders"]:
        print(f"{folder}/")
    for f in listing["files"]:
        print(f"{f['key']}\t{f['file_size']}\t{f['id']}")
    return 0


def cmd_rm(client: FileBucketClient, args: argparse.Namespace) -> int:
    out = client.delete_files(file_ids=args.file_ids or None, bucket_id=args.bucket_id, path=args.path)
    print(json.dumps(out, indent=2))
    return 1 if out["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
