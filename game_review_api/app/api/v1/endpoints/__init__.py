"""
Routers for API v1: auth, users, game lists, games, reviews, activities
and service info.  ``router.py`` mounts them under their prefixes.
"""
