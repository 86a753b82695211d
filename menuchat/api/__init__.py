"""
API Routers

    widget     -> /sessions, /chat, /menu
    orders     -> /orders
    dashboard  -> /dashboard/*

Shared request plumbing lives in deps.
"""
