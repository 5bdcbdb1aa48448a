"""Administrative command line for shelby."""
