"""
Delete expired pending verifications now (the app also does this on a schedule).
Usage: python scripts/purge_pending_verifications.py
"""
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.services.pending_cleanup import run_pending_cleanup_job


def main():
    deleted = run_pending_cleanup_job()
    print(f"Deleted {deleted} expired pending verification(s).")


if __name__ == "__main__":
    main()
