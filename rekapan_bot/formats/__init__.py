"""
Formats package - each input format is a self-contained module.

To add a new format:
1. Create a new .py file in this folder (e.g., icon.py)
2. Define these required attributes:
   - FORMAT_TAG: FormatTag (unique tag)
   - PRIORITY: int (lower is checked first by the classifier)
   - MARKERS: list of upper-case substrings; any one present selects the format
   - DESCRIPTION: str (where the text comes from)
   - extract_fields(text) -> Dict[str, str] (field name -> value, "" when missing)
3. A format with no MARKERS is the fallback and must have the highest PRIORITY

The format will be automatically loaded by FormatRegistry.
"""
