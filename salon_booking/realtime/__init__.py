"""
Realtime notifications

- ConnectionRegistry: user identity -> live connections (registry.py)
- NotificationDispatcher: fans appointment events out to those connections (dispatcher.py)
- /ws/appointments channel (router.py)
"""
