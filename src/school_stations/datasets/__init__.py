"""School Stations - Dataset ingesters and preprocessors."""
