"""Workhorse: phased-workflow and collaborative-messaging core for agency projects."""

__version__ = "0.1.0"
