"""
Command-line interface entry points for tinywiki.

Entry points:
- tinywiki: Load the index and serve articles over HTTP
- tinywiki-extract: Print the wikitext of one or more titles
"""
