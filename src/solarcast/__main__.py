from solarcast.cli import main

main()
