"""
Regos - Registration lifecycle core

Hosts publish registration forms, respondents submit answers, and admins
confirm payment before anything goes live. Registrations expire on their
own once their end date passes.

Fun fact: the word "register" comes from the medieval Latin registrum, a
list of things "carried back" (regerere) into the record.
"""

from regos.platform import Regos

__version__ = "0.1.0"
__all__ = ["Regos", "__version__"]
