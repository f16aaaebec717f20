"""
Directory Domain

Members and guests that tee times are booked for.

Structure:
```
clubhouse/domain/directory/
├── __init__.py
├── schemas.py     # Member and guest schemas
├── repository.py  # Member and guest queries and writes
├── service.py     # Uniqueness checks and updates
└── router.py      # /members and /guests endpoints
```
"""
