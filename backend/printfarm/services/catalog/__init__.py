"""Reference-data administration for colors, parts and templates."""
