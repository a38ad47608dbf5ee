from r2gallery.server import main

if __name__ == "__main__":
    main()
