"""
TIANJI - AI destiny readings.

Daily fortune and compatibility readings generated by Gemini, read aloud in
the master's voice and exported as a result card.
"""

__version__ = "3.5.0"
