"""MOBI Bridge: a chat bot that converts FB2/TXT books to MOBI.

WHY: E-readers want MOBI, people have FB2 and TXT. This package takes a
document posted to a chat, converts it with calibre's ebook-convert,
and hands the result back both as a chat attachment and as a short
download link served over HTTP.

HOW: Three layers. core/ holds the slug registry, the job stages, the
external tool wrappers, and the conversion pipeline. server/ serves
registered files over HTTP (FastAPI). slack/ receives documents and
sends replies (slack-bolt, Socket Mode).

RULES:
- The slug registry is the only state shared between layers
- Conversion and download are external processes, never in-process
"""

__version__ = "0.1.0"
