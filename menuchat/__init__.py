"""
                MenuChat Ordering Platform

A multi-tenant restaurant ordering backend: dashboard endpoints for
restaurant owners and a public chat + ordering widget, all sharing one
tenant-scoped request contract.

Author: Khalil Bannouri
Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Khalil_Bannouri"
