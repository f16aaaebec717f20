"""
Scheduling Domain

Tee time scheduling and capacity for the club.

Structure:
```
clubhouse/domain/scheduling/
├── __init__.py
├── exceptions.py       # SchedulingError hierarchy (mapped to HTTP in main.py)
├── schemas.py          # Config, teesheet, booking and restriction schemas
├── repository.py       # Scheduling database queries
├── time_calculator.py  # HH:MM sequences and block specs
├── occupants.py        # Member / guest / fill occupant variants
├── config_resolver.py  # Which config governs a date (+ default seeding)
├── config_service.py   # Config, rule and template management
├── materializer.py     # Lazy teesheet + time block creation, reassignment
├── ledger.py           # Occupants per block against capacity
├── restrictions.py     # Restriction checks (blocking vs advisory)
├── restriction_service.py  # Restriction and override management
├── party_mover.py      # Move a whole party between blocks
├── service.py          # Booking flow: restrictions, overrides, ledger
└── router.py           # /teesheets, /schedule-configs and /restrictions endpoints
```

Transactions:
- Teesheet creation relies on the unique teesheets.date constraint and
  re-reads on IntegrityError; no application lock.
- Config reassignment and party moves each run in one transaction and
  are never retried.
- Bookings lock the block row (SELECT ... FOR UPDATE) for the capacity check.
"""
