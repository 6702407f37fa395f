from prerender.cli import main

main()
