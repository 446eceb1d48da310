"""
Browser Crawler

A browser-driving web crawler with a resumable, priority-ordered crawl
frontier and pluggable crawl delays.
"""

__version__ = "1.0.0"
__description__ = "A browser-driving web crawler with a resumable crawl frontier"
