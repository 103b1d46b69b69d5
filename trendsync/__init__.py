"""
Trend Sync - Client Record Synchronization

Keeps a local collection of personal-finance transactions consistent
with the Trend backend while the user adds, edits and deletes them.

DESIGN PRINCIPLES:
1. Local state changes first, the backend confirms later
2. Every failed remote call restores the previous state
3. The backend copy wins over any cached copy when opening an edit
4. Category data degrades to "no categories", never to a crash
5. The remote backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Trend Team"
