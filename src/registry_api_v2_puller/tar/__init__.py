"""Legacy docker save layout writer and archiver."""
