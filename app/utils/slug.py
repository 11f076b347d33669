import re


def slugify(name: str) -> str:
    """'Elite Properties & Co' -> 'elite-properties-co'"""
    slug = re.sub(r"[^a-z0-9\s-]", "", name.lower())
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")
