#!/usr/bin/env python3
"""
Batch runner: build the dataset of every configured project.

A project that fails (Jira or git unreachable, corrupt objects) is logged
and skipped; the remaining projects still run.

Usage:
    python run_batches.py --all          # Build every project
    python run_batches.py --project avro # Build one project
    python run_batches.py --merge        # Merge all oracle tables
    python run_batches.py --status       # Check progress
"""

import argparse
import logging
from pathlib import Path

import pandas as pd

from defect_timeline import DatasetError, JiraClient
from defect_timeline.config import DATASET_DIR, PROJECTS
from defect_timeline.extraction import extract_dataset, write_dataset

logger = logging.getLogger("run_batches")

OUTPUT_DIR = DATASET_DIR


def oracle_path(project: str) -> Path:
    return OUTPUT_DIR / project / 'datasets' / 'oracle.csv'


def run_batch(projects):
    """Build each project in turn; one JiraClient is shared by the batch"""
    print(f"\n{'='*60}")
    print(f"BATCH: {len(projects)} projects")
    print(f"{'='*60}")

    client = JiraClient()
    done, failed = [], []
    for i, project in enumerate(projects, 1):
        print(f"\n[{i}/{len(projects)}] ", end="")
        try:
            result = extract_dataset(project, PROJECTS, client=client)
        except DatasetError as e:
            logger.error("%s aborted: %s", project.name, e.reason, exc_info=e.__cause__)
            failed.append(project.name)
            continue
        folder = write_dataset(result, OUTPUT_DIR)
        print(f"  Saved to: {folder}")
        done.append(project.name)

    print(f"\n{'='*60}")
    print(f"BATCH COMPLETE: {len(done)} built, {len(failed)} failed {failed or ''}")
    print(f"Jira API: {client.get_stats()}")
    print(f"{'='*60}")
    return done, failed


def merge_batches():
    """Merge all oracle tables into one dataset with a Project column"""
    dfs = []
    for project in PROJECTS:
        path = oracle_path(project.name)
        if not path.exists():
            continue
        print(f"Loading {path}...")
        df = pd.read_csv(path)
        df.insert(0, 'Project', project.name)
        dfs.append(df)
        print(f"  {len(df)} rows")

    if not dfs:
        print("No oracle files found!")
        return

    merged = pd.concat(dfs, ignore_index=True)
    output_file = OUTPUT_DIR / "dataset_all.csv"
    merged.to_csv(output_file, index=False)

    print(f"\n{'='*60}")
    print(f"MERGED: {len(merged)} rows")
    print(f"Saved to: {output_file}")
    print(f"{'='*60}")

    print(f"\nDataset stats:")
    print(f"  Projects: {merged['Project'].nunique()}")
    print(f"  Buggy: {merged['Buggy'].sum()} ({merged['Buggy'].mean()*100:.1f}%)")
    print(f"  Clean: {len(merged) - merged['Buggy'].sum()}")


def show_status():
    """Show which projects already have a dataset"""
    print(f"\n{'='*60}")
    print("BATCH STATUS")
    print(f"{'='*60}")

    for project in PROJECTS:
        path = oracle_path(project.name)
        if path.exists():
            df = pd.read_csv(path)
            status = f"DONE ({len(df)} rows, {df['Version'].nunique()} releases)"
        else:
            status = "PENDING"
        print(f"  {project.name:<12} {status}")


def main():
    parser = argparse.ArgumentParser(description='Batch runner for dataset generation')
    parser.add_argument('--all', action='store_true', help='Build every configured project')
    parser.add_argument('--project', type=str, help='Build a single project')
    parser.add_argument('--merge', action='store_true', help='Merge all oracle tables')
    parser.add_argument('--status', action='store_true', help='Show progress status')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    if args.status:
        show_status()
        return

    if args.merge:
        merge_batches()
        return

    if args.all:
        run_batch(PROJECTS)
        print("\nMerging all projects...")
        merge_batches()
    elif args.project:
        selected = [p for p in PROJECTS if p.name == args.project]
        if not selected:
            print(f"Unknown project. Must be one of: {', '.join(p.name for p in PROJECTS)}")
            return
        run_batch(selected)
    else:
        parser.print_help()
        print("\nExamples:")
        print("  python run_batches.py --status        # Check progress")
        print("  python run_batches.py --project avro  # Build one project")
        print("  python run_batches.py --all           # Build everything")
        print("  python run_batches.py --merge         # Merge outputs")


if __name__ == "__main__":
    main()
