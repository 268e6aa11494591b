"""
AEGIS engineering service.

Physics feasibility analysis and primitive-based blueprints generated by Gemini,
behind a credential-rotating request executor and a strict output contract.
"""

__version__ = "1.0.0"
