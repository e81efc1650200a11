"""
termguard - Glossary term enforcement for machine-assisted translation.

Finds glossary terms in source text, builds the terminology payload for
translation prompts, verifies translations against the glossary and keeps
DeepL glossaries in sync with the local ones.
"""

__version__ = "1.0.0"
