# Services package init
"""
Client Records Backend — Services Layer
=========================================

Service Inventory:
    - ClientService: client CRUD, search, details, guarded delete, zip counts
    - PhotoService:  profile photo upload / removal
    - FileService:   photo files on disk (validation, naming, unlink)

Services take the database session and the caller's OrgScope as arguments
and hold no per-request state.
"""
