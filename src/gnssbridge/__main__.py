from gnssbridge.cli import main

main()
