#!/usr/bin/env python3
"""Inspect stored analyses.

Usage:
    python scripts/inspect_analysis.py [hostname]
    python scripts/inspect_analysis.py   # lists the most recent analyses

Helps debug why an analysis is stuck pending or ended in an error.
"""

from __future__ import annotations

import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.db.session import SessionLocal
from app.services.analysis_store import AnalysisStore
from app.services.freshness import is_analysis_old

LIST_LIMIT = 50


def main() -> None:
    db = SessionLocal()
    try:
        store = AnalysisStore(db)
        if len(sys.argv) > 1:
            hostname = sys.argv[1].strip().lower()
            a = store.get(hostname)
            if not a:
                print(f"Analysis {hostname} not found")
                return
            print(f"\nAnalysis: {a.company_name} ({a.hostname})")
            print(f"  status: {a.status}  stale: {is_analysis_old(a.created_at)}")
            print(f"  user: {a.username!r}  visits: {a.visits}")
            print(f"  created: {a.created_at}  updated: {a.updated_at}")
            print(f"  error: {a.error!r}")
            if a.result:
                result = json.loads(a.result)
                content = (result.get("output") or {}).get("content") or {}
                print(f"  run: {json.dumps(result.get('run') or {})}")
                print(f"  output keys: {sorted(content)}")
                competitors = [c.get("hostname") for c in content.get("competitors") or []]
                print(f"  competitors: {competitors}")
        else:
            rows, total = store.dump_page(LIST_LIMIT, 0)
            print(f"\nAnalyses ({total} total, newest first):")
            for a in rows:
                flag = "error" if a.error else a.status
                print(f"  {a.hostname}: {flag} visits={a.visits} created={a.created_at}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
