"""Describes the L'Atelier domain. Centres around the `Atelier`.

A user hands over a few keywords and the atelier answers with a sweet: a
recipe first, then a photo of it plated, then sketches of each step.

- Everything creative is done by Gemini, behind an api.
- The only invariant is the order of things. No new order while one is in
  the oven, and a recipe never waits on its pictures.
- Nothing is stored. Close the page and the sweet is gone.
"""
