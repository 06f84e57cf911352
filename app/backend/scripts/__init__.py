"""Command-line maintenance scripts"""
