"""
Scheduling Domain - core rules shared by availability and appointments

Structure:
```
domain/scheduling/
├── errors.py         # SchedulingError hierarchy (code + HTTP status)
├── types.py          # Weekday, AppointmentStatus, Role, lifecycle transitions
├── time_grid.py      # Fixed-width slot grid over the bookable day
├── permissions.py    # Actor and per-operation authorization checks
└── slot_resolver.py  # Available / bookable slots and the weekly overview
```

Kept free of imports so the locking layer can use the errors without
pulling in the repositories.
"""
