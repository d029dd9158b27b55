"""Parsing package: multi-strategy product page extraction."""
from suppscore.parsing.parser import ContentParser
from suppscore.parsing.sites import SITE_PROFILES, SiteProfile

__all__ = ["ContentParser", "SITE_PROFILES", "SiteProfile"]
