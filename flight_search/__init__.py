"""Flight search service: hybrid relevance ranking over tracked flight prices"""

__version__ = "0.1.0"
