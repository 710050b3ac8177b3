"""aobridge - REST bridge between AO, a Telegram bot and ArDrive permanent storage."""

__version__ = "0.1.0"
