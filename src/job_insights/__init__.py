"""
Job insights: scheduled job board harvesting feeding a job store and a semantic index.
"""

__version__ = "0.1.0"
