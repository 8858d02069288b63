"""PetitionDesk - civic grievance petition portal.

Citizens submit petitions and track them with a petition code and phone
number; administrators review, edit, resolve and delete them.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
