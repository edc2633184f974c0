"""Describes the Refreshing Recipes domain. Centres around the `RecipeRepository`.

What is there to it?

- Recipes come from a feed on the network or from a local SQLite cache.
- A single flag, saved with the user's settings, picks which one.
- The cache is filled once, from the feed, and only when it is empty.
- Nothing reconciles the two. Offline is a snapshot.

The feed and the store are both injected, so either can be faked.
"""
