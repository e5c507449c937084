"""
Configuration and constants for Defect Timeline.
"""

import os
from dataclasses import dataclass
from pathlib import Path

# =============================================================================
# PROJECT SETTINGS
# =============================================================================


@dataclass(frozen=True)
class ProjectConfig:
    """A project mined from Jira plus its git repository"""
    name: str
    repo_url: str
    branch: str = 'master'
    extra_jql: str = ''

    @property
    def jira_key(self) -> str:
        return self.name.upper()


PROJECTS = [
    ProjectConfig('bookkeeper', 'https://github.com/apache/bookkeeper', 'master'),
    ProjectConfig('avro', 'https://github.com/apache/avro', 'main',
                  extra_jql='AND component in (Java, JAVA, java)'),
]

# Donor projects whose mean proportion seeds the cold start
COLD_START_PROJECTS = ['openjpa', 'storm', 'zookeeper', 'syncope', 'tajo']

# =============================================================================
# PATHS
# =============================================================================

DATASET_DIR = Path(os.environ.get('DATASET_DIR', 'dataset'))
REPOS_DIR = Path(os.environ.get('REPOS_DIR', 'repos'))

# Only files with this suffix are measured and labeled
SOURCE_SUFFIX = os.environ.get('SOURCE_SUFFIX', '.java')

# =============================================================================
# JIRA API SETTINGS
# =============================================================================

JIRA_API_BASE = os.environ.get('JIRA_API_BASE', 'https://issues.apache.org/jira/rest/api/2')
JIRA_PAGE_SIZE = 1000
JIRA_TIMEOUT = 30

# Fraction of the (date-sorted) releases kept; later releases carry too many
# still-dormant bugs to be labeled reliably
RELEASE_FRACTION = 0.5

# =============================================================================
# COMMIT RESOLUTION
# =============================================================================

# Formatted with the escaped release name and project name, searched in
# commit messages (case-insensitive)
RELEASE_TAG_PATTERNS = [
    r'Tag.* {name}(?: release)?(?![\w.])',
    r'{project} {name} release',
]

# =============================================================================
# PROPORTION
# =============================================================================

# Minimum number of issues with a known IV fixed in a release before the
# project's own running proportion replaces the cold start
PROPORTION_MIN_VALID = 5

# Whether issues whose IV was estimated feed the running proportion
FEED_ESTIMATED_PROPORTIONS = os.environ.get('FEED_ESTIMATED_PROPORTIONS', '1') not in ('0', 'false', 'no')

# =============================================================================
# METRIC COLUMNS
# =============================================================================

# Column order is relied on by the downstream classifiers
METRIC_COLS = [
    'LOC', 'LOC_TOUCHED', 'CHURN',
    'AVERAGE_LOC_ADDED', 'MAX_LOC_ADDED',
    'AVERAGE_CHURN', 'MAX_CHURN',
    'NR', 'N_AUTH', 'N_FIX',
]

VERSION_COL = 'Version'
FILE_COL = 'File_Name'
BUGGY_COL = 'Buggy'

ALL_COLS = [VERSION_COL, FILE_COL, *METRIC_COLS, BUGGY_COL]
