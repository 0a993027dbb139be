"""vdsource — download the source files of a Vercel deployment"""

__version__ = "1.0.0"
