from sitemapper.cli import main

main()
