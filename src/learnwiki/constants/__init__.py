"""Configuration constants.

Re-exports all constants for convenient importing:
    from learnwiki.constants import DEFAULT_LIBRARY, GENERATING_CONTENT
"""

from learnwiki.constants.storage import *  # noqa: F403
from learnwiki.constants.jobs import *  # noqa: F403
