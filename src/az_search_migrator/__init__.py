"""Azure AI Search index migration tool.

Copies an index schema and all of its documents from one Azure AI Search
service to another, then verifies the document counts.
"""

__version__ = "0.1.0"
