"""Mining pool support library: hashing, encodings, cash addresses, difficulty, time, locks and TCP helpers."""

__version__ = "0.1.0"