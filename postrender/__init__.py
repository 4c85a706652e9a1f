"""postrender: a small static renderer for Markdown blogs.

A directory of posts, each with a metadata header and a Markdown body, is
rendered into one HTML page per post plus an index page listing the posts
newest first. Sitemap and pagination output can be switched on from the
configuration file.

The main entry point is the CLI module, which provides the build command.
"""

__all__ = ["__version__"]
__version__ = "0.1.0"
