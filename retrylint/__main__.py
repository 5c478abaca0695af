from retrylint.cli import main

main()
