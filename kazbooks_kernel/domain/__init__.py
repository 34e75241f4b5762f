"""Pure domain core: DTOs, chart of accounts, period rules, journal rules, clock."""
