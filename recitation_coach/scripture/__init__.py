"""Reference text provider backed by public Bible APIs.

WHY: The passages people memorize have to come from somewhere. API.Bible
offers hundreds of translations but needs a key; bible-api.com needs no
key but serves far fewer. The provider hides that choice from callers.

HOW: books.py holds the canonical book table, models.py the translation
and catalog types, client.py one httpx client per upstream, and
provider.py the ScriptureProvider that tries them in order.

RULES:
- Callers get plain text (no markup) wrapped in ReferenceText, or None
- Missing identifiers are rejected before any network call
"""
