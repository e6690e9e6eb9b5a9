"""Domain logic: authentication, collections, presence, reveal and the socket lifecycle."""
