"""Attendance Tracker package.

JSON API for employee check-in/check-out, users and departments. Organized by
feature modules (auth, attendance, users, departments, ...) with a thin Flask
controller layer over service/repository layers.
"""

__version__ = "1.0.0"
