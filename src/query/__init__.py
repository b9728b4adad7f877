"""Conversion query parsing.

The query layer turns raw search-box text such as `100 usd to eur` into a strict `ParsedQuery`,
which the search pipeline hands to the rates client.
"""
