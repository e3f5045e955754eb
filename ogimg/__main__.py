from ogimg.cli import main

main()
