"""
CLI Module - Command-line interface for Course Exporter.
========================================================

Usage:
    course-exporter --help
    course-exporter export https://frontendmasters.com/courses/web-auth/
    course-exporter parse page.html --url https://frontendmasters.com/courses/web-auth/
    course-exporter info
"""

from course_exporter.cli.main import app, cli

__all__ = ["app", "cli"]
