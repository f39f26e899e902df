from __future__ import annotations

import os
import time
import argparse
from pathlib import Path
from typing import List

from dotenv import load_dotenv
from openai import OpenAI

DEFAULT_EXTENSIONS = (".pdf", ".md", ".txt", ".docx", ".html", ".json")


def require(name: str) -> str:
    v = os.getenv(name)
    if not v:
        raise RuntimeError(f"Missing required env var: {name}")
    return v


def collect_files(root: str, extensions=DEFAULT_EXTENSIONS) -> List[Path]:
    base = Path(root)
    if base.is_file():
        return [base]
    return sorted(p for p in base.rglob("*") if p.is_file() and p.suffix.lower() in extensions)


def batched(items: List[Path], size: int):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def main() -> None:
    load_dotenv()

    parser = argparse.ArgumentParser(description="Upload documents into an OpenAI vector store.")
    parser.add_argument("--dir", default="docs", help="File or directory of documents to upload")
    parser.add_argument("--name", default="course-documents", help="Name for a newly created vector store")
    parser.add_argument("--vector-store-id", default=None, help="Add to an existing vector store instead")
    parser.add_argument("--batch", type=int, default=20, help="Files per upload batch")
    parser.add_argument("--dry-run", action="store_true", help="Only list the files, don't upload")
    args = parser.parse_args()

    # ---- Collect files ----
    files = collect_files(args.dir)
    if not files:
        raise SystemExit(f"No documents found under {args.dir} ({', '.join(DEFAULT_EXTENSIONS)})")
    print(f"Found {len(files)} documents under {args.dir}")

    if args.dry_run:
        for p in files:
            print(f"   - {p}")
        return

    client = OpenAI(api_key=require("OPENAI_API_KEY"), base_url=os.getenv("OPENAI_BASE_URL") or None)

    # ---- Create or reuse the vector store ----
    if args.vector_store_id:
        store = client.vector_stores.retrieve(args.vector_store_id)
        print(f"Using vector store {store.id} ({store.name})")
    else:
        store = client.vector_stores.create(name=args.name)
        print(f"Created vector store {store.id} ({args.name})")

    # ---- Upload in batches ----
    total = len(files)
    done = 0
    t0 = time.time()
    for batch in batched(files, args.batch):
        handles = [open(p, "rb") for p in batch]
        try:
            result = client.vector_stores.file_batches.upload_and_poll(
                vector_store_id=store.id,
                files=handles,
            )
        finally:
            for h in handles:
                h.close()
        done += len(batch)
        counts = result.file_counts
        print(
            f"   → Batch {result.status}: {done}/{total} "
            f"(completed={counts.completed}, failed={counts.failed})"
        )

    print(f"Done! Uploaded {total} documents in {time.time() - t0:.1f}s")
    print(f"VECTOR_STORE_IDS={store.id}")


if __name__ == "__main__":
    main()
