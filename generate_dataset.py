#!/usr/bin/env python3
"""
Defect Timeline - build the release-level defect dataset of one project.

Usage:
    python generate_dataset.py --project bookkeeper
    python generate_dataset.py --project avro --no-feed-estimated
    python generate_dataset.py --project bookkeeper --cold-start 1.8
"""

import argparse
import logging
import sys
from pathlib import Path

from defect_timeline import DatasetError, JiraClient, diagnose_dataset
from defect_timeline.config import DATASET_DIR, FEED_ESTIMATED_PROPORTIONS, PROJECTS, REPOS_DIR
from defect_timeline.extraction import build_dataset, extract_dataset, write_dataset
from defect_timeline.history import GitHistory


def main():
    parser = argparse.ArgumentParser(description='Build a labeled defect dataset from Jira and git')
    parser.add_argument('--project', required=True, choices=[p.name for p in PROJECTS])
    parser.add_argument('--repos', type=Path, default=REPOS_DIR, help='Where repositories are cloned')
    parser.add_argument('--output', type=Path, default=DATASET_DIR, help='Dataset output folder')
    parser.add_argument('--cold-start', type=float, help='Use this proportion instead of the donor projects')
    parser.add_argument('--no-feed-estimated', action='store_true',
                        help='Do not feed estimated injected versions back into the running proportion')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    project = next(p for p in PROJECTS if p.name == args.project)
    feed_estimated = FEED_ESTIMATED_PROPORTIONS and not args.no_feed_estimated

    try:
        if args.cold_start is not None:
            history = GitHistory.clone(project.repo_url, args.repos / project.name, project.branch)
            try:
                result = build_dataset(project, JiraClient(), history, args.cold_start, feed_estimated)
            finally:
                history.close()
        else:
            result = extract_dataset(project, PROJECTS, repos_dir=args.repos, feed_estimated=feed_estimated)
    except DatasetError as e:
        logging.getLogger(__name__).error("%s failed: %s", project.name, e.reason, exc_info=e.__cause__)
        sys.exit(1)

    folder = write_dataset(result, args.output)
    print(f"\nSaved {len(result.snapshots)} snapshots + oracle to: {folder}")
    diagnose_dataset(result.oracle, result.versions, project.name)


if __name__ == "__main__":
    main()
