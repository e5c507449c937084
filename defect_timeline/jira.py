"""
Jira REST API integration for releases and fixed bug issues.
"""

import logging
import math
from datetime import date

import requests

from .config import (
    JIRA_API_BASE,
    JIRA_PAGE_SIZE,
    JIRA_TIMEOUT,
    RELEASE_FRACTION,
)
from .errors import IssueSourceError
from .models import Issue, Release

logger = logging.getLogger(__name__)

ISSUE_FIELDS = ['key', 'resolutiondate', 'versions', 'created', 'fixVersions']


def parse_date(value: str) -> date:
    """Parse the date part of a Jira date or timestamp ('2014-03-05T10:11:12.000+0000')"""
    return date.fromisoformat(value[:10])


def parse_releases(versions: list[dict], fraction: float = RELEASE_FRACTION) -> list[Release]:
    """
    Keep released versions that have a release date, sort them by date and
    keep the earliest ``ceil(n * fraction)`` of them.
    """
    dated = []
    for version in versions:
        if not version.get('released') or 'releaseDate' not in version:
            continue
        dated.append((parse_date(version['releaseDate']), version['name']))

    dated.sort(key=lambda item: item[0])
    keep = math.ceil(len(dated) * fraction)
    return [Release(name, released, i) for i, (released, name) in enumerate(dated[:keep])]


def parse_issue(raw: dict) -> Issue | None:
    """Build an Issue from a search result entry, None if a required field is missing"""
    fields = raw.get('fields') or {}
    if not raw.get('key') or not fields.get('resolutiondate') or not fields.get('created'):
        return None

    affected = sorted(
        parse_date(v['releaseDate'])
        for v in fields.get('versions') or []
        if v.get('releaseDate')
    )
    return Issue(
        key=raw['key'],
        created=parse_date(fields['created']),
        resolved=parse_date(fields['resolutiondate']),
        affected=tuple(affected),
    )


def build_jql(project: str, first: date, last: date, extra_jql: str = '') -> str:
    jql = (
        f'project={project} AND issueType=Bug AND (status=closed OR status=resolved) '
        f'AND resolution=fixed AND resolved>={first.isoformat()} AND resolved<={last.isoformat()}'
    )
    if extra_jql:
        jql = f'{jql} {extra_jql}'
    return jql


class JiraClient:
    """Fetch releases and fixed bugs of Apache Jira projects"""

    def __init__(self, base_url: str = JIRA_API_BASE, session: requests.Session = None):
        self.base_url = base_url.rstrip('/')
        self.api_calls = 0
        self.skipped_issues = 0

        if session:
            self.session = session
        else:
            self.session = requests.Session()
            self.session.headers['Accept'] = 'application/json'
            self.session.headers['User-Agent'] = 'Defect-Timeline'

    def _get_json(self, path: str, params: dict = None):
        url = f'{self.base_url}/{path}'
        try:
            resp = self.session.get(url, params=params, timeout=JIRA_TIMEOUT)
            self.api_calls += 1
            resp.raise_for_status()
            return resp.json()
        except requests.RequestException as e:
            raise IssueSourceError(f"Could not load page: {url}") from e
        except ValueError as e:
            raise IssueSourceError(f"Malformed JSON from {url}") from e

    def list_releases(self, project: str, fraction: float = RELEASE_FRACTION) -> list[Release]:
        """Released versions of a project, earliest ``fraction`` of them, in date order"""
        data = self._get_json(f'project/{project.upper()}/versions')
        if not isinstance(data, list):
            raise IssueSourceError(f"Unexpected versions payload for {project}")
        try:
            releases = parse_releases(data, fraction)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise IssueSourceError(f"Malformed version data for {project}") from e
        logger.info("%s: %d of %d versions kept", project, len(releases), len(data))
        return releases

    def list_issues(self, project: str, first: date, last: date, extra_jql: str = '') -> list[Issue]:
        """
        Fixed bug issues resolved between ``first`` and ``last`` (both inclusive).

        Issues lacking a key, a creation or a resolution date are skipped and
        counted in ``skipped_issues``.
        """
        jql = build_jql(project.upper(), first, last, extra_jql)
        issues = []
        start_at = 0
        while True:
            page = self._get_json('search', {
                'jql': jql,
                'fields': ','.join(ISSUE_FIELDS),
                'startAt': start_at,
                'maxResults': JIRA_PAGE_SIZE,
            })
            try:
                total = page['total']
                raw_issues = page['issues']
            except (KeyError, TypeError) as e:
                raise IssueSourceError(f"Unexpected search payload for {project}") from e

            for raw in raw_issues:
                try:
                    issue = parse_issue(raw)
                except (ValueError, KeyError, TypeError, AttributeError) as e:
                    raise IssueSourceError(f"Malformed issue data for {project}") from e
                if issue is None:
                    self.skipped_issues += 1
                    continue
                issues.append(issue)

            start_at += len(raw_issues)
            if not raw_issues or start_at >= total:
                break

        # Jira returns newest first
        issues.reverse()
        logger.info("%s: %d fixed bugs loaded (%d skipped)", project, len(issues), self.skipped_issues)
        return issues

    def load_project(self, project: str, extra_jql: str = '',
                     fraction: float = RELEASE_FRACTION) -> tuple[list[Release], list[Issue]]:
        """Releases and the issues resolved within their date range"""
        releases = self.list_releases(project, fraction)
        if not releases:
            raise IssueSourceError(f"No released versions with a date for {project}")
        issues = self.list_issues(project, releases[0].date, releases[-1].date, extra_jql)
        return releases, issues

    def get_stats(self) -> dict:
        """Return API usage statistics"""
        return {
            'api_calls': self.api_calls,
            'skipped_issues': self.skipped_issues,
        }
