from packagent.cli import main

main()
