"""
Web layer of volunteer-manager: typed actions, Data Table APIs and the
FastAPI application that serves them.
"""
