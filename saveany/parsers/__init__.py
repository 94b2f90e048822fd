"""Parsers that turn tweet and Kemono post URLs into downloadable items."""