"""Order entry: creation, numbering and order detail edits."""
