"""Macrodesk: macro matching, agent feedback and QA scoring for support teams."""
