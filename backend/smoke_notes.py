#!/usr/bin/env python3
"""Smoke-check a running Diff Digest backend with real generation requests.

Usage:
    uvicorn diff_digest.main:app --port 8000 &
    python backend/smoke_notes.py [--diff-source http://localhost:3000]

Without --diff-source a small built-in diff is used.
"""

import argparse
import asyncio
import sys

import httpx

from diff_digest.client import (
    DiffSourceClient,
    NoteStreamConsumer,
    merge_diffs,
    render_note,
)
from diff_digest.models import DiffItem, NoteMode

BASE_URL = "http://localhost:8000"

SAMPLE_DIFF = DiffItem(
    id="1",
    description="Add dark mode toggle",
    diff="""\
diff --git a/src/theme.ts b/src/theme.ts
+export const darkTheme = { background: "#111", foreground: "#eee" };
+export function toggleTheme(current) {
+  return current === darkTheme ? lightTheme : darkTheme;
+}
""",
)


async def check_health():
    """Test health endpoint."""
    print("🏥 Testing health endpoint...")
    async with httpx.AsyncClient(timeout=10.0) as client:
        resp = await client.get(f"{BASE_URL}/api/health")
        print(f"   Status: {resp.status_code}")
        print(f"   Response: {resp.json()}")
        assert resp.status_code == 200
        assert resp.json()["llm_configured"] is True
        print("   ✅ Health check passed\n")


async def load_diffs(diff_source: str | None) -> list[DiffItem]:
    if diff_source is None:
        return [SAMPLE_DIFF]
    print(f"📥 Fetching diffs from {diff_source}...")
    async with DiffSourceClient(diff_source) as source:
        page = await source.fetch_page(1, per_page=3)
    diffs = merge_diffs([], page, 1)
    print(f"   Got {len(diffs)} diffs (next page: {page.next_page})\n")
    return diffs or [SAMPLE_DIFF]


async def check_generation(diffs: list[DiffItem]):
    """Generate both note modes for every diff concurrently."""
    print("📝 Generating marketing + developer notes...")

    def on_update(diff_id, mode, state):
        if state.status == "streaming":
            print(".", end="", flush=True)

    async with NoteStreamConsumer(BASE_URL) as consumer:
        consumer.subscribe(on_update)
        consumer.track(d.id for d in diffs)
        await asyncio.gather(*(
            consumer.generate(d.id, mode, d.diff) for d in diffs for mode in NoteMode
        ))
        print()

        for d in diffs:
            for mode in NoteMode:
                state = consumer.state(d.id, mode)
                print(f"   PR #{d.id} {mode.value} notes ({state.status}):")
                for line in render_note(state):
                    print(f"     • {line}")
                assert state.status == "complete", f"{mode.value} notes for {d.id} failed"
    print("   ✅ Generation passed\n")


async def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--diff-source", default=None, help="Base URL of the diff listing")
    args = parser.parse_args(argv)

    print("=" * 60)
    print("DIFF DIGEST BACKEND SMOKE CHECK")
    print("=" * 60)
    print()

    try:
        await check_health()
        diffs = await load_diffs(args.diff_source)
        await check_generation(diffs)

        print("=" * 60)
        print("✅ ALL CHECKS PASSED!")
        print("=" * 60)
        return 0

    except Exception as e:
        print()
        print("=" * 60)
        print(f"❌ CHECK FAILED: {e}")
        print("=" * 60)
        import traceback
        traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
