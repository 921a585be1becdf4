"""questledger: progress export engine for achievements and FTB quests."""

__version__ = "0.1.0"
