"""catalog/ -- Movie entries, their validation, and ownership rules.

Layer rule: catalog/ may import from auth/ and core/. It does NOT import from
api/ or web/.
"""
