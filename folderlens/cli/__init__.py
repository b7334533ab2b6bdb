"""CLI tools for FolderLens.

- ``python -m folderlens.cli sync`` -- index the source folder.
- ``python -m folderlens.cli ask QUESTION`` -- answer from the index.
- ``python -m folderlens.cli preview FILE_ID`` -- show one file's chunks.
- ``python -m folderlens.cli stats`` -- index size.

Each command builds only the providers it needs.
"""
