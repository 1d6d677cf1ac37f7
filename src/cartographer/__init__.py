"""
Cartographer - Site structure discovery

Maps the reachable resources of a website into a single, depth-bounded tree
using sitemap/robots analysis, recursive link following and directory
probing, while pacing requests politely toward the target server.
"""

__version__ = "1.0.0"
__author__ = "Cartographer Team"
__status__ = "Development"

from .core.site_crawler import crawl


__all__ = ["crawl", "__version__"]
