"""Blog CMS API: users, articles and page-view analytics."""

__version__ = "1.0.0"
