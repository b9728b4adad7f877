"""Debounced, cancellable, latest-result-wins search.

`DebouncedSearch` turns a stream of search-box edits into one authoritative current result. The
list page and the fallback item are thin variants over it.
"""
