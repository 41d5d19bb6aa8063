"""HTTP surface for the TableTalk virtual host."""
